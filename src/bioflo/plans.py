"""
Structured plan generation (Today Plan and Weekly Debrief).

Plans are JSON-shaped domain objects. When the provider output cannot be
parsed into the expected model, a minimal safe default is returned instead
of propagating the parse error.
"""

from __future__ import annotations

from datetime import date
from typing import TypeVar

from pydantic import BaseModel, Field, ValidationError

from bioflo.config import Settings, get_settings
from bioflo.errors import MalformedStructuredOutput, ProviderExhaustedError
from bioflo.logging import get_logger
from bioflo.parsing import parse_json_object
from bioflo.prompts import CoachContext, PromptBuilder, PromptPair
from bioflo.providers import GenerationRequest, Turn
from bioflo.router import ModelRouter
from bioflo.safety.patterns import LocalPatternCheck

logger = get_logger(__name__)

PlanT = TypeVar("PlanT", bound=BaseModel)

PLAN_PROVIDERS = ("anthropic", "openai")


class TodayPlan(BaseModel):
    focus: str
    summary: str
    morning: list[str] = Field(default_factory=list)
    afternoon: list[str] = Field(default_factory=list)
    evening: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    @classmethod
    def safe_default(cls) -> "TodayPlan":
        return cls(
            focus="Steady basics",
            summary="Keep today simple: light, movement, regular meals and an easy evening.",
            morning=["Get outside for 10 minutes of daylight", "Drink a glass of water"],
            afternoon=["Take a short walk after lunch"],
            evening=["Dim the lights an hour before bed"],
            notes=["We'll personalise this once your plan can be generated."],
        )


class WeeklyDebrief(BaseModel):
    headline: str
    summary: str
    wins: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    focus_for_next_week: list[str] = Field(default_factory=list)
    coach_message: str = ""

    @classmethod
    def safe_default(cls) -> "WeeklyDebrief":
        return cls(
            headline="Your week in review",
            summary="We couldn't put together a detailed debrief this time.",
            focus_for_next_week=["Keep a consistent wake time", "Move a little every day"],
            coach_message="Small, steady habits add up. See you next week.",
        )


class PlanGenerator:
    """Generates structured plans through the model router."""

    def __init__(
        self,
        router: ModelRouter,
        settings: Settings | None = None,
        prompts: PromptBuilder | None = None,
        local_check: LocalPatternCheck | None = None,
    ):
        self.router = router
        self.settings = settings or get_settings()
        self.prompts = prompts or PromptBuilder()
        self.local_check = local_check or LocalPatternCheck()

    async def today_plan(
        self,
        context: CoachContext | None = None,
        today: date | str | None = None,
    ) -> TodayPlan:
        today = today or date.today()
        day = today.isoformat() if isinstance(today, date) else today
        prompt = self.prompts.today_plan(context or CoachContext(), day)
        return await self._generate(prompt, TodayPlan, TodayPlan.safe_default)

    async def weekly_debrief(self, summary: str) -> WeeklyDebrief:
        prompt = self.prompts.weekly_debrief(summary)
        return await self._generate(prompt, WeeklyDebrief, WeeklyDebrief.safe_default)

    async def _generate(self, prompt: PromptPair, model: type[PlanT], default) -> PlanT:
        request = GenerationRequest(
            providers=PLAN_PROVIDERS,
            system=prompt.system,
            turns=(Turn(role="user", content=prompt.user),),
            timeout=self.settings.generation_timeout,
            max_output_tokens=1500,
            temperature=0.5,
            json_output=True,
        )
        try:
            result = await self.router.generate(request)
        except ProviderExhaustedError as e:
            logger.warning("plan_generation_exhausted", plan=model.__name__, error=str(e))
            return default()

        try:
            plan = self.parse(result.text, model)
        except MalformedStructuredOutput as e:
            logger.warning("plan_output_malformed", plan=model.__name__, error=str(e))
            return default()

        verdict = self.local_check.check(plan.model_dump_json())
        if verdict.is_blocked:
            logger.warning("plan_output_blocked", plan=model.__name__, reasons=verdict.reasons)
            return default()
        return plan

    @staticmethod
    def parse(text: str, model: type[PlanT]) -> PlanT:
        """
        Parse provider output into a plan model.

        Raises:
            MalformedStructuredOutput: if no valid object can be read.
        """
        try:
            return model.model_validate(parse_json_object(text))
        except (ValueError, ValidationError) as e:
            raise MalformedStructuredOutput(str(e)) from e
