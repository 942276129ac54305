"""
Error taxonomy for the triage-and-routing gateway.

Provider adapters translate SDK exceptions into ``ProviderError`` with a
closed ``ProviderErrorClass``; the model router only ever inspects that enum.
"""

from __future__ import annotations

from enum import Enum


class ProviderErrorClass(str, Enum):
    """Structured classes of upstream provider failure."""

    AUTH = "auth"  # Bad or missing credentials, never retried
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NO_CONTENT = "no_content"  # Provider answered with empty text
    TRANSIENT = "transient"  # Connection drops, 5xx, overload
    UNKNOWN = "unknown"


RETRYABLE_ERROR_CLASSES = frozenset(
    {
        ProviderErrorClass.RATE_LIMIT,
        ProviderErrorClass.TIMEOUT,
        ProviderErrorClass.NO_CONTENT,
        ProviderErrorClass.TRANSIENT,
    }
)


class GatewayError(Exception):
    """Base class for errors surfaced by the gateway to its caller."""


class ProviderError(GatewayError):
    """A single failed call against one upstream provider."""

    def __init__(
        self,
        provider: str,
        error_class: ProviderErrorClass,
        message: str = "",
    ):
        self.provider = provider
        self.error_class = error_class
        self.message = message
        super().__init__(f"{provider} [{error_class.value}]: {message}")

    @property
    def retryable(self) -> bool:
        return self.error_class in RETRYABLE_ERROR_CLASSES


class ProviderAuthError(GatewayError):
    """Provider rejected our credentials. A configuration problem, never retried."""

    def __init__(self, cause: ProviderError):
        self.cause = cause
        self.provider = cause.provider
        super().__init__(
            f"Provider '{cause.provider}' rejected the configured credentials"
        )


class ProviderExhaustedError(GatewayError):
    """Every provider in the chain failed after its retries."""

    def __init__(self, failures: list[ProviderError], detail: str | None = None):
        self.failures = list(failures)
        if failures:
            summary = "; ".join(
                f"{f.provider} ({f.error_class.value}): {f.message}" for f in failures
            )
        else:
            summary = detail or "no provider configured"
        super().__init__(f"All providers failed: {summary}")

    @property
    def providers(self) -> list[str]:
        return [f.provider for f in self.failures]


class ClassificationAmbiguous(Exception):
    """Remote classifier output could not be mapped to a category.

    Always recovered inside the classifier; never surfaced.
    """


class JudgeUnavailable(Exception):
    """The remote safety judge failed or returned an unusable verdict.

    Always recovered inside the reviewer as a BLOCK verdict.
    """


class MalformedStructuredOutput(Exception):
    """A handler expected JSON-shaped output and could not parse it.

    Always recovered by substituting a safe default object.
    """
