"""
Configuration management for BioFlo.

Handles environment variables, provider credentials, model defaults and the
timeout/retry constants shared (read-only) by every request.
"""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

# Remote classification calls must never wait longer than this
MAX_CLASSIFICATION_TIMEOUT = 5.0


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("1", "true", "yes", "on")


# Handler defaults keyed by triage category value
DEFAULT_HANDLER_PROVIDERS: dict[str, list[str]] = {
    "general_wellness": ["openai", "anthropic"],
    "mental_health_non_crisis": ["openai", "anthropic"],
    "medical_non_urgent": ["anthropic", "openai"],
    "moderate_risk_protocol": ["anthropic", "openai"],
    "extreme_risk_protocol": ["anthropic", "openai"],
}

DEFAULT_HANDLER_MAX_TOKENS: dict[str, int] = {
    "general_wellness": 2000,
    "mental_health_non_crisis": 2000,
    "medical_non_urgent": 1500,
    "moderate_risk_protocol": 2000,
    "extreme_risk_protocol": 1500,
}


class Settings(BaseModel):
    """
    Application settings loaded from environment variables.

    These settings control provider credentials, model selection, logging,
    and the timeout/retry discipline of every outbound call.
    """

    # API Keys
    openai_api_key: str = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", ""),
        description="OpenAI API key",
    )
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""),
        description="Anthropic API key",
    )
    google_api_key: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_API_KEY", ""),
        description="Google AI / Gemini API key",
    )

    # Runtime settings
    environment: Environment = Field(
        default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development")),
        description="Application environment",
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"),
        description="Logging level",
    )

    # Model defaults per provider
    openai_model: str = Field(
        default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o"),
        description="Default OpenAI chat model",
    )
    anthropic_model: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5"),
        description="Default Anthropic model",
    )
    gemini_model: str = Field(
        default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
        description="Default Gemini model",
    )
    classifier_models: dict[str, str] = Field(
        default_factory=lambda: {
            "openai": os.getenv("OPENAI_CHEAP_MODEL", "gpt-4o-mini"),
            "anthropic": os.getenv("ANTHROPIC_CHEAP_MODEL", "claude-3-5-haiku-latest"),
        },
        description="Cheap model for remote triage classification, keyed by provider",
    )
    judge_models: dict[str, str] = Field(
        default_factory=lambda: {
            "anthropic": os.getenv("ANTHROPIC_JUDGE_MODEL", "claude-sonnet-4-20250514"),
            "openai": os.getenv("OPENAI_JUDGE_MODEL", "gpt-4o"),
        },
        description="Model for the safety judge and rewrites, keyed by provider",
    )

    # Timeouts (seconds)
    generation_timeout: float = Field(
        default_factory=lambda: _env_float("GENERATION_TIMEOUT", 30.0),
        description="Timeout for a single generation attempt",
    )
    classification_timeout: float = Field(
        default_factory=lambda: _env_float("CLASSIFICATION_TIMEOUT", 5.0),
        description="Timeout for the remote classification call (clamped to 5s)",
    )
    judge_timeout: float = Field(
        default_factory=lambda: _env_float("JUDGE_TIMEOUT", 5.0),
        description="Timeout for a single safety judge attempt",
    )

    # Retry policy
    max_retries: int = Field(
        default_factory=lambda: _env_int("MAX_RETRIES", 2),
        ge=0,
        description="Retries on the same provider before falling back",
    )
    retry_base_delay: float = Field(
        default_factory=lambda: _env_float("RETRY_BASE_DELAY", 1.0),
        ge=0.0,
        description="Base backoff delay in seconds",
    )
    retry_max_jitter: float = Field(
        default_factory=lambda: _env_float("RETRY_MAX_JITTER", 0.25),
        ge=0.0,
        description="Upper bound of the random jitter added to each backoff",
    )

    # Provider routing
    primary_provider: str = Field(
        default_factory=lambda: os.getenv("PRIMARY_PROVIDER", "openai"),
        description="Provider tried first when a category has no preference",
    )
    secondary_provider: Optional[str] = Field(
        default_factory=lambda: os.getenv("SECONDARY_PROVIDER", "anthropic") or None,
        description="Single fallback provider",
    )
    handler_providers: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_HANDLER_PROVIDERS.items()},
        description="Ordered provider preference per triage category",
    )
    handler_max_tokens: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_HANDLER_MAX_TOKENS),
        description="Max output tokens per triage category",
    )
    classifier_provider: str = Field(
        default_factory=lambda: os.getenv("CLASSIFIER_PROVIDER", "openai"),
        description="Provider used for the remote classification fallback",
    )
    judge_provider: str = Field(
        default_factory=lambda: os.getenv("JUDGE_PROVIDER", "anthropic"),
        description="Provider used for the remote safety judge",
    )
    rewrite_providers: list[str] = Field(
        default_factory=lambda: ["anthropic", "openai"],
        description="Ordered providers for the single rewrite pass",
    )

    # Feature switches
    remote_classification_enabled: bool = Field(
        default_factory=lambda: _env_flag("REMOTE_CLASSIFICATION_ENABLED", True),
        description="Allow a remote model call for ambiguous messages",
    )
    judge_enabled: bool = Field(
        default_factory=lambda: _env_flag("JUDGE_ENABLED", True),
        description="Run the remote safety judge on generated answers",
    )

    # Conversation settings
    history_window: int = Field(
        default=20, description="Prior turns forwarded to the provider"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def effective_classification_timeout(self) -> float:
        return min(self.classification_timeout, MAX_CLASSIFICATION_TIMEOUT)

    @property
    def classifier_model(self) -> Optional[str]:
        """Model for ``classifier_provider``; None means that provider's default."""
        return self.classifier_models.get(self.classifier_provider)

    @property
    def judge_model(self) -> Optional[str]:
        """Model for ``judge_provider``; None means that provider's default."""
        return self.judge_models.get(self.judge_provider)

    @property
    def rewrite_model(self) -> Optional[str]:
        """Model for the first rewrite provider; fallbacks use their own default."""
        if not self.rewrite_providers:
            return None
        return self.judge_models.get(self.rewrite_providers[0])

    def provider_order(self, category: str) -> list[str]:
        """Ordered provider preference for a handler category."""
        key = getattr(category, "value", category)
        configured = self.handler_providers.get(key)
        if configured:
            return list(configured)
        order = [self.primary_provider]
        if self.secondary_provider and self.secondary_provider != self.primary_provider:
            order.append(self.secondary_provider)
        return order

    def max_tokens_for(self, category: str) -> int:
        key = getattr(category, "value", category)
        return self.handler_max_tokens.get(key, 2000)

    def api_key_for(self, provider: str) -> str:
        """Return the configured credential for a provider name."""
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "gemini": self.google_api_key,
        }.get(provider, "")

    def validate_api_key(self, provider: str) -> bool:
        """Validate that a provider's API key is set."""
        key = self.api_key_for(provider)
        return bool(key and key != "your_api_key_here")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
