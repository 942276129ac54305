"""Handlers for everyday coaching and non-crisis emotional support."""

from __future__ import annotations

from bioflo.config import Settings
from bioflo.handlers.base import BaseHandler
from bioflo.logging import get_logger
from bioflo.prompts import CoachContext, PromptBuilder, PromptPair
from bioflo.router import ModelRouter
from bioflo.tools import BaseTool, default_tools
from bioflo.triage.base import Category

logger = get_logger(__name__)


class GeneralCoachHandler(BaseHandler):
    """General wellness coaching, optionally enriched by one tool result."""

    category = Category.GENERAL_WELLNESS

    def __init__(
        self,
        router: ModelRouter,
        settings: Settings | None = None,
        prompts: PromptBuilder | None = None,
        tools: list[BaseTool] | None = None,
    ):
        super().__init__(router, settings=settings, prompts=prompts)
        self.tools = default_tools() if tools is None else tools

    async def build_prompt(self, message: str, context: CoachContext) -> PromptPair:
        prompt = self.prompts.build(self.category, message, context)
        tool_context = await self._run_tool(message, context)
        if tool_context is None:
            return prompt
        return PromptPair(system=prompt.system, user=f"{prompt.user}\n\n{tool_context}")

    async def _run_tool(self, message: str, context: CoachContext) -> str | None:
        """Run the first tool that matches the message and has its inputs."""
        for tool in self.tools:
            if not tool.matches(message):
                continue
            params = tool.params_from_context(context)
            if params is None:
                continue
            try:
                result = await tool.execute(**params)
            except Exception as e:
                logger.warning("tool_execution_failed", tool=tool.name, error=str(e))
                return None
            return result.to_context(tool.name)
        return None


class MentalHealthSupportHandler(BaseHandler):
    """Supportive replies for stress, worry and low mood without crisis signs."""

    category = Category.MENTAL_HEALTH_NON_CRISIS
    temperature = 0.6
