"""
Base interfaces for text-generation providers.

Every adapter executes one generation request against one upstream provider
and normalizes provider-specific failures into ``ProviderError``. Retry,
timeout and fallback policy belong to the model router, not to adapters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass
from typing import Literal

from bioflo.errors import ProviderError, ProviderErrorClass


@dataclass(frozen=True)
class Turn:
    """One prior message in the conversation."""

    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable description of one generation call.

    ``providers`` is the ordered preference; ``model`` overrides the default
    model of the requested primary (``providers[0]``) only.
    """

    providers: tuple[str, ...]
    system: str
    turns: tuple[Turn, ...]
    model: str | None = None
    timeout: float = 30.0
    max_output_tokens: int = 2000
    temperature: float = 0.7
    json_output: bool = False


class BaseProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses implement ``_open_stream`` with their SDK and
    ``_classify_error`` to map SDK exceptions onto ``ProviderErrorClass``.
    """

    def __init__(self, default_model: str):
        self.default_model = default_model

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this provider."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is properly configured."""
        ...

    @abstractmethod
    def _open_stream(
        self, request: GenerationRequest, model: str
    ) -> AsyncIterator[str]:
        """Yield raw text fragments from the SDK. May raise SDK exceptions."""
        ...

    @abstractmethod
    def _classify_error(self, exc: Exception) -> ProviderErrorClass:
        """Map an SDK exception to a structured error class."""
        ...

    async def stream(
        self,
        request: GenerationRequest,
        model: str | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield non-empty text fragments in order.

        Closing this iterator closes the underlying SDK stream, aborting the
        HTTP call.

        Raises:
            ProviderError: for every upstream failure
        """
        if not self.is_available:
            raise ProviderError(
                self.name, ProviderErrorClass.AUTH, "provider is not configured"
            )
        resolved = model or self.default_model
        try:
            async with aclosing(self._open_stream(request, resolved)) as fragments:
                async for fragment in fragments:
                    if fragment:
                        yield fragment
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(self.name, self._classify_error(e), str(e)) from e

    async def complete(
        self,
        request: GenerationRequest,
        model: str | None = None,
    ) -> str:
        """Return the full concatenated response text."""
        parts: list[str] = []
        async with aclosing(self.stream(request, model)) as fragments:
            async for fragment in fragments:
                parts.append(fragment)
        text = "".join(parts).strip()
        if not text:
            raise ProviderError(
                self.name, ProviderErrorClass.NO_CONTENT, "empty response"
            )
        return text

    @staticmethod
    def _status_error_class(status: int | None) -> ProviderErrorClass:
        """Map an HTTP status code to a structured error class."""
        if status is None:
            return ProviderErrorClass.UNKNOWN
        if status in (401, 403):
            return ProviderErrorClass.AUTH
        if status == 429:
            return ProviderErrorClass.RATE_LIMIT
        if status in (408, 504):
            return ProviderErrorClass.TIMEOUT
        if status == 409 or status >= 500:
            return ProviderErrorClass.TRANSIENT
        return ProviderErrorClass.UNKNOWN
