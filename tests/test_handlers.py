"""
Tests for handler strategies and prompt building.
"""

import pytest
from conftest import FakeAdapter

from bioflo.handlers import (
    ExtremeRiskProtocolHandler,
    GeneralCoachHandler,
    MedicalNonUrgentHandler,
    ModerateRiskProtocolHandler,
    build_handlers,
)
from bioflo.prompts import CoachContext, PromptBuilder, detect_biohack_topic
from bioflo.providers import Turn
from bioflo.router import ModelRouter
from bioflo.triage import Category


@pytest.fixture
def router(sleep_recorder):
    return ModelRouter(
        [FakeAdapter("openai"), FakeAdapter("anthropic")], sleep=sleep_recorder
    )


class TestHandlerParameters:
    async def test_moderate_risk_request(self, router, settings):
        handler = ModerateRiskProtocolHandler(router, settings=settings)

        request = await handler.build_request(
            "Can I try a 3-day water fast?",
            history=[Turn(role="user", content="earlier"), Turn(role="assistant", content="reply")],
        )

        assert request.max_output_tokens == 2000
        assert request.providers == ("anthropic", "openai")
        assert "MODERATE-RISK" in request.turns[-1].content
        assert "Multi-day or extended fasting" in request.turns[-1].content
        # Restricted templates answer the latest message only
        assert len(request.turns) == 1

    async def test_extreme_risk_request(self, router, settings):
        handler = ExtremeRiskProtocolHandler(router, settings=settings)

        request = await handler.build_request("How long can I dry fast safely?")

        assert request.max_output_tokens == 1500
        assert request.providers[0] == "anthropic"
        assert "cannot support or guide extreme" in request.turns[-1].content

    async def test_medical_request(self, router, settings):
        handler = MedicalNonUrgentHandler(router, settings=settings)
        request = await handler.build_request("What do my thyroid labs mean?")
        assert request.max_output_tokens == 1500
        assert "NOT a doctor" in request.turns[-1].content

    async def test_general_request_keeps_history_window(self, router, settings):
        handler = GeneralCoachHandler(router, settings=settings.model_copy(update={"history_window": 3}))
        history = [
            Turn(role="user", content="one"),
            Turn(role="assistant", content="two"),
            Turn(role="user", content="three"),
            Turn(role="assistant", content="four"),
        ]

        request = await handler.build_request("How can I sleep better?", history=history)

        # Window of 3 starts on an assistant turn, which is dropped
        assert [t.content for t in request.turns[:-1]] == ["three", "four"]
        assert request.turns[-1].role == "user"
        assert request.providers == ("openai", "anthropic")
        assert request.max_output_tokens == 2000

    async def test_long_input_truncated(self, router, settings):
        handler = GeneralCoachHandler(router, settings=settings)
        request = await handler.build_request("a" * 5000)
        assert "a" * 4000 in request.turns[-1].content
        assert "a" * 4001 not in request.turns[-1].content

    async def test_generate_uses_router(self, settings, sleep_recorder):
        anthropic = FakeAdapter("anthropic", ["Please talk to your doctor first."])
        router = ModelRouter([FakeAdapter("openai"), anthropic], sleep=sleep_recorder)
        handler = ModerateRiskProtocolHandler(router, settings=settings)

        result = await handler.generate("Can I try a 3-day water fast?")

        assert result.text == "Please talk to your doctor first."
        assert result.provider == "anthropic"

    def test_build_handlers_covers_generated_categories(self, router, settings):
        handlers = build_handlers(router, settings=settings)
        assert set(handlers) == {
            Category.GENERAL_WELLNESS,
            Category.MENTAL_HEALTH_NON_CRISIS,
            Category.MEDICAL_NON_URGENT,
            Category.MODERATE_RISK_PROTOCOL,
            Category.EXTREME_RISK_PROTOCOL,
        }


class TestGeneralCoachTools:
    async def test_matching_tool_result_added(self, router, settings):
        handler = GeneralCoachHandler(router, settings=settings)
        context = CoachContext(
            age=30, sex="male", weight_kg=80, height_cm=180, activity_level="moderate"
        )

        request = await handler.build_request("What should my macros be?", context=context)

        assert "[TOOL_RESULT: macro_calculator]" in request.turns[-1].content

    async def test_tool_skipped_without_inputs(self, router, settings):
        handler = GeneralCoachHandler(router, settings=settings)

        request = await handler.build_request("What should my macros be?")

        assert "TOOL_RESULT" not in request.turns[-1].content

    async def test_sleep_tool(self, router, settings):
        handler = GeneralCoachHandler(router, settings=settings)
        context = CoachContext(wake_time="07:00")

        request = await handler.build_request("What bedtime fits my schedule?", context=context)

        assert "[TOOL_RESULT: sleep_schedule]" in request.turns[-1].content
        assert "21:45" in request.turns[-1].content


class TestPromptBuilder:
    def test_terminal_categories_have_no_prompt(self):
        with pytest.raises(ValueError):
            PromptBuilder().build(Category.MENTAL_HEALTH_CRISIS, "help")

    def test_sleep_mode_switches_system_prompt(self):
        prompt = PromptBuilder().build(
            Category.GENERAL_WELLNESS, "I can't switch off", CoachContext(sleep_mode=True)
        )
        assert "sleep mode" in prompt.system

    def test_context_is_included(self):
        context = CoachContext(user_profile="Night-shift nurse, goal: more energy")
        prompt = PromptBuilder().build(Category.GENERAL_WELLNESS, "Tips?", context)
        assert "Night-shift nurse" in prompt.user

    @pytest.mark.parametrize(
        "message, hint",
        [
            ("Can I try a 3-day water fast?", "Multi-day or extended fasting"),
            ("Is a cold plunge every morning ok?", "Sauna, cold plunge or other heat/cold exposure"),
            ("What about a nootropic stack?", "Supplement or nootropic stacking"),
            ("How long to get into ketosis?", "Ketogenic diet or ketosis protocols"),
            ("Thoughts on going carnivore?", "Carnivore or other highly restrictive diets"),
            ("Tell me about breathwork", None),
        ],
    )
    def test_biohack_topic_detection(self, message, hint):
        assert detect_biohack_topic(message) == hint
