"""
OpenAI chat-completions adapter.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import openai

from bioflo.config import Settings
from bioflo.errors import ProviderErrorClass
from bioflo.logging import get_logger
from bioflo.providers.base import BaseProviderAdapter, GenerationRequest

logger = get_logger(__name__)


class OpenAIAdapter(BaseProviderAdapter):
    """Streams chat completions from an injected ``openai.AsyncOpenAI`` client."""

    def __init__(self, client: openai.AsyncOpenAI | None, default_model: str):
        super().__init__(default_model=default_model)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIAdapter":
        client = None
        if settings.validate_api_key("openai"):
            # Retries are owned by the model router
            client = openai.AsyncOpenAI(
                api_key=settings.openai_api_key,
                max_retries=0,
                timeout=settings.generation_timeout,
            )
        else:
            logger.warning("openai_no_api_key")
        return cls(client=client, default_model=settings.openai_model)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def _open_stream(
        self, request: GenerationRequest, model: str
    ) -> AsyncIterator[str]:
        messages = [{"role": "system", "content": request.system}]
        messages.extend({"role": t.role, "content": t.content} for t in request.turns)

        kwargs = {}
        if request.json_output:
            kwargs["response_format"] = {"type": "json_object"}

        stream = await self._client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=request.max_output_tokens,
            temperature=request.temperature,
            stream=True,
            timeout=request.timeout,
            **kwargs,
        )
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        finally:
            await stream.close()

    def _classify_error(self, exc: Exception) -> ProviderErrorClass:
        if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return ProviderErrorClass.AUTH
        if isinstance(exc, openai.RateLimitError):
            return ProviderErrorClass.RATE_LIMIT
        # APITimeoutError subclasses APIConnectionError, check it first
        if isinstance(exc, openai.APITimeoutError):
            return ProviderErrorClass.TIMEOUT
        if isinstance(exc, openai.APIConnectionError):
            return ProviderErrorClass.TRANSIENT
        if isinstance(exc, openai.APIStatusError):
            return self._status_error_class(exc.status_code)
        return ProviderErrorClass.UNKNOWN
