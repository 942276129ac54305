"""
Anthropic messages adapter.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import anthropic

from bioflo.config import Settings
from bioflo.errors import ProviderErrorClass
from bioflo.logging import get_logger
from bioflo.providers.base import BaseProviderAdapter, GenerationRequest

logger = get_logger(__name__)


class AnthropicAdapter(BaseProviderAdapter):
    """Streams message text from an injected ``anthropic.AsyncAnthropic`` client."""

    def __init__(self, client: anthropic.AsyncAnthropic | None, default_model: str):
        super().__init__(default_model=default_model)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnthropicAdapter":
        client = None
        if settings.validate_api_key("anthropic"):
            client = anthropic.AsyncAnthropic(
                api_key=settings.anthropic_api_key,
                max_retries=0,
                timeout=settings.generation_timeout,
            )
        else:
            logger.warning("anthropic_no_api_key")
        return cls(client=client, default_model=settings.anthropic_model)

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def _open_stream(
        self, request: GenerationRequest, model: str
    ) -> AsyncIterator[str]:
        system = request.system
        if request.json_output:
            system = f"{system}\n\nRespond with a single JSON object and nothing else."

        async with self._client.messages.stream(
            model=model,
            max_tokens=request.max_output_tokens,
            temperature=request.temperature,
            system=system,
            messages=[{"role": t.role, "content": t.content} for t in request.turns],
            timeout=request.timeout,
        ) as stream:
            async for text in stream.text_stream:
                yield text

    def _classify_error(self, exc: Exception) -> ProviderErrorClass:
        if isinstance(
            exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)
        ):
            return ProviderErrorClass.AUTH
        if isinstance(exc, anthropic.RateLimitError):
            return ProviderErrorClass.RATE_LIMIT
        if isinstance(exc, anthropic.APITimeoutError):
            return ProviderErrorClass.TIMEOUT
        if isinstance(exc, anthropic.APIConnectionError):
            return ProviderErrorClass.TRANSIENT
        if isinstance(exc, anthropic.APIStatusError):
            # 529 overloaded lands in the >= 500 bucket
            return self._status_error_class(exc.status_code)
        return ProviderErrorClass.UNKNOWN
