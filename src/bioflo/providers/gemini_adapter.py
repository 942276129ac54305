"""
Google Gemini adapter using the ``google-genai`` SDK.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from google import genai
from google.genai import errors, types

from bioflo.config import Settings
from bioflo.errors import ProviderErrorClass
from bioflo.logging import get_logger
from bioflo.providers.base import BaseProviderAdapter, GenerationRequest

logger = get_logger(__name__)


class GeminiAdapter(BaseProviderAdapter):
    """Streams content from an injected ``genai.Client`` through its async surface."""

    def __init__(self, client: genai.Client | None, default_model: str):
        super().__init__(default_model=default_model)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiAdapter":
        client = None
        if settings.validate_api_key("gemini"):
            try:
                client = genai.Client(api_key=settings.google_api_key)
            except Exception as e:  # pragma: no cover
                logger.error("gemini_client_error", error=str(e))
        else:
            logger.warning("gemini_no_api_key")
        return cls(client=client, default_model=settings.gemini_model)

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def _open_stream(
        self, request: GenerationRequest, model: str
    ) -> AsyncIterator[str]:
        contents = [
            types.Content(
                role="model" if t.role == "assistant" else "user",
                parts=[types.Part(text=t.content)],
            )
            for t in request.turns
        ]
        config = types.GenerateContentConfig(
            system_instruction=request.system,
            max_output_tokens=request.max_output_tokens,
            temperature=request.temperature,
            response_mime_type="application/json" if request.json_output else None,
        )
        stream = await self._client.aio.models.generate_content_stream(
            model=model,
            contents=contents,
            config=config,
        )
        try:
            async for chunk in stream:
                text = getattr(chunk, "text", None)
                if text:
                    yield text
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _classify_error(self, exc: Exception) -> ProviderErrorClass:
        if isinstance(exc, errors.APIError):
            return self._status_error_class(getattr(exc, "code", None))
        if isinstance(exc, TimeoutError):
            return ProviderErrorClass.TIMEOUT
        if isinstance(exc, ConnectionError):
            return ProviderErrorClass.TRANSIENT
        return ProviderErrorClass.UNKNOWN
