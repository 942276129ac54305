"""
Tests for message triage: rule table, classifier and fixed responses.
"""

import pytest
from conftest import FakeAdapter

from bioflo.errors import ProviderErrorClass
from bioflo.router import ModelRouter, RetryPolicy
from bioflo.triage import Category, FixedResponseStore, RuleTable, TriageClassifier
from bioflo.triage.base import CATEGORY_PRECEDENCE, most_severe
from bioflo.triage.fixed_responses import CRISIS_RESPONSE, EMERGENCY_RESPONSE


class TestRuleTable:
    """Tests for the deterministic rule pass."""

    @pytest.fixture
    def classifier(self, settings):
        return TriageClassifier(router=None, settings=settings)

    @pytest.mark.parametrize(
        "message",
        [
            "I want to kill myself",
            "Sometimes I think about suicide",
            "I've been thinking about self-harm again",
            "I just want to end it all",
        ],
    )
    def test_crisis_phrases(self, classifier, message):
        result = classifier.classify_local(message)
        assert result.category == Category.MENTAL_HEALTH_CRISIS
        assert result.matched_rule == "crisis_language"

    @pytest.mark.parametrize(
        "message",
        [
            "I have chest pain and can't breathe",
            "I have chest pain and can’t breathe",
            "My dad's face is drooping, is it a stroke?",
            "my throat is swelling after eating peanuts",
            "I think my mom is having a stroke",
            "What are the signs of a stroke?",
        ],
    )
    def test_emergency_phrases(self, classifier, message):
        assert classifier.classify_local(message).category == Category.MEDICAL_EMERGENCY

    @pytest.mark.parametrize(
        "message",
        [
            "How do I fix my freestyle stroke?",
            "Any drills for a smoother rowing stroke?",
        ],
    )
    def test_sport_stroke_is_not_emergency(self, classifier, message):
        assert classifier.classify_local(message).category == Category.GENERAL_WELLNESS

    def test_short_water_fast_is_moderate(self, classifier):
        result = classifier.classify_local("Can I try a 3-day water fast?")
        assert result.category == Category.MODERATE_RISK_PROTOCOL

    @pytest.mark.parametrize(
        "message",
        [
            "How long can I dry fast safely?",
            "Thinking about a 7-day water fast",
            "Is megadosing vitamin D a good idea?",
        ],
    )
    def test_extreme_protocols(self, classifier, message):
        assert classifier.classify_local(message).category == Category.EXTREME_RISK_PROTOCOL

    def test_non_urgent_medical(self, classifier):
        result = classifier.classify_local("What do my cholesterol lab results mean?")
        assert result.category == Category.MEDICAL_NON_URGENT

    def test_non_crisis_mental_health(self, classifier):
        result = classifier.classify_local("I've been so stressed and overwhelmed at work")
        assert result.category == Category.MENTAL_HEALTH_NON_CRISIS

    def test_general_default(self, classifier):
        result = classifier.classify_local("How can I build a better morning routine?")
        assert result.category == Category.GENERAL_WELLNESS
        assert result.matched_rule is None

    def test_more_severe_category_wins(self, classifier):
        """A message matching several rules lands in the most serious one."""
        stressed_crisis = classifier.classify_local("I'm stressed and want to kill myself")
        assert stressed_crisis.category == Category.MENTAL_HEALTH_CRISIS

        fast_emergency = classifier.classify_local(
            "I'm on a 3-day water fast and now have chest pain"
        )
        assert fast_emergency.category == Category.MEDICAL_EMERGENCY

    def test_rule_pass_is_deterministic(self, classifier):
        message = "Is a cold plunge after a sauna protocol a good idea?"
        first = classifier.classify_local(message)
        second = classifier.classify_local(message)
        assert first == second

    def test_ambiguity_detection(self):
        rules = RuleTable()
        assert rules.is_ambiguous("I feel dizzy lately")
        assert rules.is_ambiguous("x" * 401)
        assert not rules.is_ambiguous("What's a good breakfast?")


class TestCategory:
    def test_precedence_order(self):
        assert CATEGORY_PRECEDENCE[0] == Category.GENERAL_WELLNESS
        assert CATEGORY_PRECEDENCE[-1] == Category.MENTAL_HEALTH_CRISIS
        assert (
            most_severe(Category.MODERATE_RISK_PROTOCOL, Category.EXTREME_RISK_PROTOCOL)
            == Category.EXTREME_RISK_PROTOCOL
        )

    def test_terminal_and_high_risk(self):
        assert Category.MENTAL_HEALTH_CRISIS.is_terminal
        assert Category.MEDICAL_EMERGENCY.is_terminal
        assert not Category.EXTREME_RISK_PROTOCOL.is_terminal
        assert Category.MODERATE_RISK_PROTOCOL.is_high_risk
        assert not Category.GENERAL_WELLNESS.is_high_risk


class TestRemoteClassification:
    """Tests for the single remote classification fallback."""

    @pytest.fixture
    def remote_settings(self, settings):
        return settings.model_copy(update={"remote_classification_enabled": True})

    def _classifier(self, remote_settings, adapter, sleep_recorder):
        router = ModelRouter([adapter], policy=RetryPolicy(), sleep=sleep_recorder)
        return TriageClassifier(router=router, settings=remote_settings)

    async def test_remote_used_for_ambiguous_message(self, remote_settings, sleep_recorder):
        adapter = FakeAdapter(
            "openai",
            ['{"category": "medical_non_urgent", "reason": "dizziness after supplements"}'],
        )
        classifier = self._classifier(remote_settings, adapter, sleep_recorder)

        result = await classifier.classify("I feel dizzy after my supplements")

        assert result.category == Category.MEDICAL_NON_URGENT
        assert result.remote_used
        request, model = adapter.calls[0]
        assert request.timeout <= 5.0
        assert request.json_output
        assert model == remote_settings.classifier_model

    async def test_remote_skipped_when_rule_fires(self, remote_settings, sleep_recorder):
        adapter = FakeAdapter("openai", ['{"category": "general_wellness"}'])
        classifier = self._classifier(remote_settings, adapter, sleep_recorder)

        result = await classifier.classify("I want to kill myself")

        assert result.category == Category.MENTAL_HEALTH_CRISIS
        assert adapter.calls == []

    async def test_remote_skipped_for_plain_message(self, remote_settings, sleep_recorder):
        adapter = FakeAdapter("openai", ['{"category": "medical_emergency"}'])
        classifier = self._classifier(remote_settings, adapter, sleep_recorder)

        result = await classifier.classify("What's a good breakfast?")

        assert result.category == Category.GENERAL_WELLNESS
        assert adapter.calls == []

    async def test_remote_failure_is_single_attempt(self, remote_settings, sleep_recorder):
        adapter = FakeAdapter("openai", [ProviderErrorClass.TIMEOUT])
        classifier = self._classifier(remote_settings, adapter, sleep_recorder)

        result = await classifier.classify("I feel dizzy after my supplements")

        assert result.category == Category.GENERAL_WELLNESS
        assert not result.remote_used
        assert len(adapter.calls) == 1
        assert sleep_recorder.delays == []

    async def test_invalid_remote_category_falls_back(self, remote_settings, sleep_recorder):
        adapter = FakeAdapter("openai", ['{"category": "astrology", "reason": "?"}'])
        classifier = self._classifier(remote_settings, adapter, sleep_recorder)

        result = await classifier.classify("I feel dizzy after my supplements")

        assert result.category == Category.GENERAL_WELLNESS
        assert not result.remote_used

    async def test_unparseable_remote_output_falls_back(self, remote_settings, sleep_recorder):
        adapter = FakeAdapter("openai", ["I think this is medical"])
        classifier = self._classifier(remote_settings, adapter, sleep_recorder)

        result = await classifier.classify("I feel dizzy after my supplements")

        assert result.category == Category.GENERAL_WELLNESS

    async def test_classify_without_router(self, settings):
        classifier = TriageClassifier(router=None, settings=settings)
        result = await classifier.classify("I feel dizzy after my supplements")
        assert result.category == Category.GENERAL_WELLNESS


class TestFixedResponseStore:
    def test_terminal_responses(self):
        store = FixedResponseStore()
        assert store.response_for(Category.MENTAL_HEALTH_CRISIS) == CRISIS_RESPONSE
        assert store.response_for(Category.MEDICAL_EMERGENCY) == EMERGENCY_RESPONSE
        assert store.handles(Category.MEDICAL_EMERGENCY)
        assert not store.handles(Category.GENERAL_WELLNESS)

    def test_non_terminal_category_rejected(self):
        with pytest.raises(ValueError):
            FixedResponseStore().response_for(Category.MODERATE_RISK_PROTOCOL)
