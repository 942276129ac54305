"""
Handler strategies, one per generated category.
"""

from __future__ import annotations

from bioflo.config import Settings
from bioflo.handlers.base import BaseHandler
from bioflo.handlers.coach import GeneralCoachHandler, MentalHealthSupportHandler
from bioflo.handlers.medical import MedicalNonUrgentHandler
from bioflo.handlers.protocols import (
    ExtremeRiskProtocolHandler,
    ModerateRiskProtocolHandler,
)
from bioflo.prompts import PromptBuilder
from bioflo.router import ModelRouter
from bioflo.tools import BaseTool
from bioflo.triage.base import Category


def build_handlers(
    router: ModelRouter,
    settings: Settings | None = None,
    tools: list[BaseTool] | None = None,
) -> dict[Category, BaseHandler]:
    """One handler per non-terminal category, sharing a prompt builder."""
    prompts = PromptBuilder()
    handlers: list[BaseHandler] = [
        GeneralCoachHandler(router, settings=settings, prompts=prompts, tools=tools),
        MentalHealthSupportHandler(router, settings=settings, prompts=prompts),
        MedicalNonUrgentHandler(router, settings=settings, prompts=prompts),
        ModerateRiskProtocolHandler(router, settings=settings, prompts=prompts),
        ExtremeRiskProtocolHandler(router, settings=settings, prompts=prompts),
    ]
    return {h.category: h for h in handlers}


__all__ = [
    "BaseHandler",
    "ExtremeRiskProtocolHandler",
    "GeneralCoachHandler",
    "MedicalNonUrgentHandler",
    "MentalHealthSupportHandler",
    "ModerateRiskProtocolHandler",
    "build_handlers",
]
