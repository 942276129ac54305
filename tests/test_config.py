"""
Tests for settings and the error taxonomy.
"""

from bioflo.config import MAX_CLASSIFICATION_TIMEOUT, Settings
from bioflo.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderErrorClass,
    ProviderExhaustedError,
)


class TestSettings:
    def test_category_provider_order(self, settings):
        assert settings.provider_order("general_wellness") == ["openai", "anthropic"]
        assert settings.provider_order("moderate_risk_protocol") == ["anthropic", "openai"]

    def test_unknown_category_uses_primary_and_secondary(self, settings):
        assert settings.provider_order("something_else") == ["openai", "anthropic"]

        solo = settings.model_copy(update={"secondary_provider": None})
        assert solo.provider_order("something_else") == ["openai"]

    def test_max_tokens_for(self, settings):
        assert settings.max_tokens_for("medical_non_urgent") == 1500
        assert settings.max_tokens_for("something_else") == 2000

    def test_classification_timeout_is_clamped(self, settings):
        slow = settings.model_copy(update={"classification_timeout": 30.0})
        assert slow.effective_classification_timeout == MAX_CLASSIFICATION_TIMEOUT

        fast = settings.model_copy(update={"classification_timeout": 2.0})
        assert fast.effective_classification_timeout == 2.0

    def test_api_keys(self, settings):
        assert settings.validate_api_key("openai")
        assert not settings.validate_api_key("gemini")
        assert not settings.validate_api_key("mistral")

        placeholder = Settings(openai_api_key="your_api_key_here")
        assert not placeholder.validate_api_key("openai")

    def test_judge_and_classifier_models_follow_provider(self, settings):
        assert settings.judge_model == "claude-sonnet-4-20250514"
        assert settings.classifier_model == "gpt-4o-mini"

        swapped = settings.model_copy(
            update={"judge_provider": "openai", "classifier_provider": "anthropic"}
        )
        assert swapped.judge_model == "gpt-4o"
        assert swapped.classifier_model == "claude-3-5-haiku-latest"

    def test_unmapped_provider_uses_adapter_default(self, settings):
        gemini = settings.model_copy(update={"judge_provider": "gemini"})
        assert gemini.judge_model is None

    def test_rewrite_model_matches_first_rewrite_provider(self, settings):
        assert settings.rewrite_model == "claude-sonnet-4-20250514"

        openai_first = settings.model_copy(update={"rewrite_providers": ["openai"]})
        assert openai_first.rewrite_model == "gpt-4o"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "4")
        monkeypatch.setenv("JUDGE_ENABLED", "false")
        monkeypatch.setenv("PRIMARY_PROVIDER", "anthropic")

        settings = Settings()

        assert settings.max_retries == 4
        assert settings.judge_enabled is False
        assert settings.primary_provider == "anthropic"


class TestErrors:
    def test_retryable_classes(self):
        assert ProviderError("openai", ProviderErrorClass.TIMEOUT).retryable
        assert ProviderError("openai", ProviderErrorClass.NO_CONTENT).retryable
        assert not ProviderError("openai", ProviderErrorClass.AUTH).retryable
        assert not ProviderError("openai", ProviderErrorClass.UNKNOWN).retryable

    def test_exhausted_summary(self):
        failures = [
            ProviderError("openai", ProviderErrorClass.TIMEOUT, "slow"),
            ProviderError("anthropic", ProviderErrorClass.RATE_LIMIT, "busy"),
        ]
        error = ProviderExhaustedError(failures)

        assert error.providers == ["openai", "anthropic"]
        assert "openai (timeout): slow" in str(error)

    def test_auth_error_keeps_cause(self):
        cause = ProviderError("anthropic", ProviderErrorClass.AUTH, "invalid key")
        error = ProviderAuthError(cause)

        assert error.provider == "anthropic"
        assert error.cause is cause
