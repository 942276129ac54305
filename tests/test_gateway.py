"""
End-to-end tests for the triage-and-routing gateway.
"""

import asyncio

import pytest
from conftest import FakeAdapter

from bioflo.errors import ProviderAuthError, ProviderErrorClass, ProviderExhaustedError
from bioflo.gateway import build_gateway
from bioflo.safety import Verdict
from bioflo.triage import Category
from bioflo.triage.fixed_responses import (
    CONFIGURATION_ERROR_RESPONSE,
    CRISIS_RESPONSE,
    EMERGENCY_RESPONSE,
    SAFE_FALLBACK_RESPONSE,
    SERVICE_UNAVAILABLE_RESPONSE,
)

SAFE_PROTOCOL_ANSWER = (
    "A 3-day water fast is an advanced, optional tool. Many people start with "
    "shorter eating windows instead. I'm not a doctor, so please consult your "
    "clinician before trying it."
)


def make_gateway(settings, openai=None, anthropic=None, *extra):
    openai = openai or FakeAdapter("openai", ["Keep a steady wake time."])
    anthropic = anthropic or FakeAdapter("anthropic", ["Keep a steady wake time."])
    gateway = build_gateway(settings, adapters=[openai, anthropic, *extra])
    return gateway, openai, anthropic


async def collect_events(gateway, message, **kwargs):
    return [event async for event in gateway.stream_events(message, **kwargs)]


class TestTerminalCategories:
    async def test_crisis_returns_fixed_text_without_generation(self, settings):
        gateway, openai, anthropic = make_gateway(settings)

        response = await gateway.handle("I want to kill myself")

        assert response.category == Category.MENTAL_HEALTH_CRISIS
        assert response.text == CRISIS_RESPONSE
        assert response.is_fixed
        assert openai.calls == [] and anthropic.calls == []

    async def test_emergency_returns_fixed_text(self, settings):
        gateway, openai, anthropic = make_gateway(settings)

        text = await gateway.reply("I have chest pain and can't breathe")

        assert text == EMERGENCY_RESPONSE
        assert openai.calls == [] and anthropic.calls == []

    async def test_crisis_never_calls_remote_services(self, settings):
        """Even with remote classification and the judge enabled."""
        settings = settings.model_copy(
            update={"remote_classification_enabled": True, "judge_enabled": True}
        )
        gateway, openai, anthropic = make_gateway(settings)

        response = await gateway.handle("I want to kill myself")

        assert response.text == CRISIS_RESPONSE
        assert openai.calls == [] and anthropic.calls == []


class TestGeneratedCategories:
    async def test_moderate_risk_protocol(self, settings):
        settings = settings.model_copy(
            update={"judge_enabled": True, "judge_provider": "gemini"}
        )
        anthropic = FakeAdapter("anthropic", [SAFE_PROTOCOL_ANSWER])
        judge = FakeAdapter(
            "gemini", ['{"verdict": "SAFE", "reasons": [], "needs_edit": false}']
        )
        gateway, openai, _ = make_gateway(settings, None, anthropic, judge)

        response = await gateway.handle("Can I try a 3-day water fast?")

        assert response.category == Category.MODERATE_RISK_PROTOCOL
        assert response.text == SAFE_PROTOCOL_ANSWER
        assert response.verdict.outcome == Verdict.SAFE
        request, _ = anthropic.calls[0]
        assert request.max_output_tokens == 2000
        assert "MODERATE-RISK" in request.turns[-1].content
        assert len(judge.calls) == 1
        assert openai.calls == []

    async def test_extreme_risk_protocol_never_returns_steps(self, settings):
        anthropic = FakeAdapter(
            "anthropic",
            ["Step 1: stop all fluids in the evening.\nStep 2: continue for 24 hours."],
        )
        gateway, _, _ = make_gateway(settings, None, anthropic)

        response = await gateway.handle("How long can I dry fast safely?")

        assert response.category == Category.EXTREME_RISK_PROTOCOL
        assert "cannot support" in anthropic.calls[0][0].turns[-1].content
        assert "Step 1" not in response.text
        assert response.text == SAFE_FALLBACK_RESPONSE

    async def test_primary_timeouts_fall_back_to_secondary(self, settings):
        openai = FakeAdapter("openai", [ProviderErrorClass.TIMEOUT])
        anthropic = FakeAdapter("anthropic", ["Morning light helps set your clock."])
        gateway, _, _ = make_gateway(settings, openai, anthropic)

        response = await gateway.handle("How can I get more energy in the morning?")

        assert response.text == "Morning light helps set your clock."
        assert response.provider == "anthropic"
        assert response.retries == 2
        assert response.fell_back
        assert len(openai.calls) == 3

    async def test_both_providers_fail(self, settings):
        openai = FakeAdapter("openai", [ProviderErrorClass.TRANSIENT])
        anthropic = FakeAdapter("anthropic", [ProviderErrorClass.RATE_LIMIT])
        gateway, _, _ = make_gateway(settings, openai, anthropic)

        with pytest.raises(ProviderExhaustedError) as exc_info:
            await gateway.handle("How can I get more energy in the morning?")

        assert exc_info.value.providers == ["openai", "anthropic"]

    async def test_auth_error_is_surfaced(self, settings):
        openai = FakeAdapter("openai", [ProviderErrorClass.AUTH])
        gateway, _, anthropic = make_gateway(settings, openai)

        with pytest.raises(ProviderAuthError):
            await gateway.handle("How can I get more energy in the morning?")

        assert anthropic.calls == []

    async def test_dosage_answer_is_replaced(self, settings):
        openai = FakeAdapter("openai", ["You could take 500mg ibuprofen twice daily."])
        gateway, _, _ = make_gateway(settings, openai)

        response = await gateway.handle("What helps with sore legs after a run?")

        assert response.verdict.outcome == Verdict.BLOCK
        assert response.text == SAFE_FALLBACK_RESPONSE
        assert "500mg" not in response.text

    async def test_warn_answer_is_rewritten_once(self, settings):
        openai = FakeAdapter("openai", ["Take magnesium twice daily before bed."])
        anthropic = FakeAdapter(
            "anthropic",
            ["Magnesium-rich foods like greens may help. Please ask your doctor about supplements."],
        )
        gateway, _, _ = make_gateway(settings, openai, anthropic)

        response = await gateway.handle("Does magnesium help sleep?")

        assert response.rewritten
        assert response.text.startswith("Magnesium-rich foods")
        assert len(anthropic.calls) == 1

    async def test_failed_rewrite_is_blocked(self, settings):
        openai = FakeAdapter("openai", ["Take magnesium twice daily before bed."])
        anthropic = FakeAdapter("anthropic", ["Take it twice daily, every day."])
        gateway, _, _ = make_gateway(settings, openai, anthropic)

        response = await gateway.handle("Does magnesium help sleep?")

        assert not response.rewritten
        assert response.verdict.outcome == Verdict.BLOCK
        assert response.text == SAFE_FALLBACK_RESPONSE

    async def test_judge_outage_returns_fallback(self, settings):
        settings = settings.model_copy(
            update={"judge_enabled": True, "judge_provider": "gemini"}
        )
        judge = FakeAdapter("gemini", [ProviderErrorClass.TRANSIENT])
        gateway, _, _ = make_gateway(settings, None, None, judge)

        response = await gateway.handle("How can I sleep better?")

        assert response.verdict.outcome == Verdict.BLOCK
        assert response.text == SAFE_FALLBACK_RESPONSE

    async def test_concurrent_messages_are_independent(self, settings):
        openai = FakeAdapter("openai", ["Go for a short walk."], delay=0.001)
        gateway, _, _ = make_gateway(settings, openai)

        messages = [
            "I want to kill myself",
            "How can I sleep better?",
            "I have chest pain and can't breathe",
            "Any tips for a calmer evening?",
        ]
        responses = await asyncio.gather(*(gateway.handle(m) for m in messages))

        assert responses[0].text == CRISIS_RESPONSE
        assert responses[1].text == "Go for a short walk."
        assert responses[2].text == EMERGENCY_RESPONSE
        assert responses[3].text == "Go for a short walk."


class TestStreamEvents:
    async def test_tokens_then_reply(self, settings):
        openai = FakeAdapter("openai", ["Dim the lights an hour before bed."])
        gateway, _, _ = make_gateway(settings, openai)

        events = await collect_events(gateway, "How can I sleep better?")

        tokens = [e["value"] for e in events if e.get("type") == "token"]
        assert len(tokens) > 1
        assert events[-1] == {"reply": "Dim the lights an hour before bed."}
        assert "".join(tokens) == events[-1]["reply"]

    async def test_fixed_response_is_single_reply(self, settings):
        gateway, _, _ = make_gateway(settings)

        events = await collect_events(gateway, "I want to kill myself")

        assert events == [{"reply": CRISIS_RESPONSE}]

    async def test_blocked_stream_ends_with_fallback(self, settings):
        openai = FakeAdapter("openai", ["You could take 500mg ibuprofen twice daily."])
        gateway, _, _ = make_gateway(settings, openai)

        events = await collect_events(gateway, "What helps with sore legs?")

        assert events[-1] == {"reply": SAFE_FALLBACK_RESPONSE}

    async def test_exhausted_stream_ends_with_calm_error(self, settings):
        openai = FakeAdapter("openai", [ProviderErrorClass.TRANSIENT])
        anthropic = FakeAdapter("anthropic", [ProviderErrorClass.TRANSIENT])
        gateway, _, _ = make_gateway(settings, openai, anthropic)

        events = await collect_events(gateway, "How can I sleep better?")

        assert events == [{"type": "error", "error": SERVICE_UNAVAILABLE_RESPONSE}]

    async def test_auth_failure_stream_ends_with_configuration_error(self, settings):
        openai = FakeAdapter("openai", [ProviderErrorClass.AUTH])
        gateway, _, _ = make_gateway(settings, openai)

        events = await collect_events(gateway, "How can I sleep better?")

        assert events == [{"type": "error", "error": CONFIGURATION_ERROR_RESPONSE}]

    async def test_closing_event_stream_aborts_provider(self, settings):
        openai = FakeAdapter("openai", [" ".join(["rest"] * 100)], delay=0.001)
        gateway, _, _ = make_gateway(settings, openai)

        events = gateway.stream_events("How can I recover better?")
        received = []
        async for event in events:
            received.append(event)
            if len(received) == 3:
                break
        await events.aclose()

        assert all(e["type"] == "token" for e in received)
        assert openai.aborted == 1
