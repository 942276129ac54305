"""Base handler strategy shared by every generated category.

A handler selects its prompt template, builds one immutable
``GenerationRequest`` with category-specific parameters (token budget,
provider preference) and hands it to the model router.
"""

from __future__ import annotations

from collections.abc import Sequence

from bioflo.config import Settings, get_settings
from bioflo.logging import get_logger
from bioflo.prompts import CoachContext, PromptBuilder, PromptPair
from bioflo.providers import GenerationRequest, Turn
from bioflo.router import GenerationResult, GenerationStream, ModelRouter
from bioflo.triage.base import Category

logger = get_logger(__name__)


class BaseHandler:
    """Minimal base class for category handlers."""

    category: Category
    temperature: float = 0.7
    # Restricted templates answer the latest message only
    include_history: bool = True

    # Safety limits for LLM inputs
    MAX_INPUT_LENGTH = 4000
    MAX_INPUT_CHARS_WARNING = 2000

    def __init__(
        self,
        router: ModelRouter,
        settings: Settings | None = None,
        prompts: PromptBuilder | None = None,
    ):
        self.router = router
        self.settings = settings or get_settings()
        self.prompts = prompts or PromptBuilder()

    @property
    def name(self) -> str:
        return self.__class__.__name__.lower()

    @property
    def max_tokens(self) -> int:
        return self.settings.max_tokens_for(self.category)

    @property
    def providers(self) -> tuple[str, ...]:
        return tuple(self.settings.provider_order(self.category))

    def _validate_and_truncate_input(self, message: str) -> str:
        """Truncate overly long input before it reaches a provider."""
        input_len = len(message)
        if input_len > self.MAX_INPUT_CHARS_WARNING:
            logger.warning(
                "long_user_input",
                handler=self.name,
                length=input_len,
                max_length=self.MAX_INPUT_LENGTH,
            )
        if input_len > self.MAX_INPUT_LENGTH:
            logger.info(
                "input_truncated",
                handler=self.name,
                original_length=input_len,
                truncated_length=self.MAX_INPUT_LENGTH,
            )
            return message[: self.MAX_INPUT_LENGTH]
        return message

    async def build_prompt(self, message: str, context: CoachContext) -> PromptPair:
        return self.prompts.build(self.category, message, context)

    def _history_turns(self, history: Sequence[Turn]) -> list[Turn]:
        if not self.include_history:
            return []
        window = list(history)[-self.settings.history_window :]
        # Conversations sent upstream must open with a user turn
        while window and window[0].role != "user":
            window.pop(0)
        return window

    async def build_request(
        self,
        message: str,
        history: Sequence[Turn] = (),
        context: CoachContext | None = None,
    ) -> GenerationRequest:
        """Construct the immutable request for one handler invocation."""
        message = self._validate_and_truncate_input(message)
        prompt = await self.build_prompt(message, context or CoachContext())
        turns = self._history_turns(history)
        turns.append(Turn(role="user", content=prompt.user))
        return GenerationRequest(
            providers=self.providers,
            system=prompt.system,
            turns=tuple(turns),
            timeout=self.settings.generation_timeout,
            max_output_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    async def generate(
        self,
        message: str,
        history: Sequence[Turn] = (),
        context: CoachContext | None = None,
    ) -> GenerationResult:
        request = await self.build_request(message, history, context)
        return await self.router.generate(request)

    async def stream(
        self,
        message: str,
        history: Sequence[Turn] = (),
        context: CoachContext | None = None,
    ) -> GenerationStream:
        request = await self.build_request(message, history, context)
        return self.router.stream(request)
