"""
Triage-and-routing gateway.

The only component the chat layer talks to. Each message is handled
independently:

    message -> classifier -> fixed response (CRISIS / EMERGENCY)
                          -> handler -> model router -> safety reviewer

Fixed responses bypass review; every generated answer is reviewed exactly
once before it reaches the caller. The gateway is also the single place
that logs category, provider, retry count and verdict.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

from bioflo.config import Settings, get_settings
from bioflo.errors import (
    GatewayError,
    JudgeUnavailable,
    ProviderAuthError,
)
from bioflo.handlers import BaseHandler, build_handlers
from bioflo.logging import TraceContext, get_logger
from bioflo.prompts import CoachContext
from bioflo.providers import BaseProviderAdapter, Turn
from bioflo.router import ModelRouter
from bioflo.safety import SafetyReviewer, SafetyVerdict, Verdict
from bioflo.triage import Category, Classification, FixedResponseStore, TriageClassifier
from bioflo.triage.fixed_responses import (
    CONFIGURATION_ERROR_RESPONSE,
    SERVICE_UNAVAILABLE_RESPONSE,
)

logger = get_logger(__name__)


@dataclass
class GatewayResponse:
    """Final answer for one message plus how it was produced."""

    text: str
    classification: Classification
    verdict: SafetyVerdict | None = None
    provider: str | None = None
    retries: int = 0
    fell_back: bool = False
    rewritten: bool = False

    @property
    def category(self) -> Category:
        return self.classification.category

    @property
    def is_fixed(self) -> bool:
        """Whether the text came from the fixed-response store."""
        return self.verdict is None


@dataclass
class ReviewedAnswer:
    text: str
    verdict: SafetyVerdict
    rewritten: bool = False


class Gateway:
    """Composes classifier, handlers, router and reviewer into one pipeline."""

    def __init__(
        self,
        classifier: TriageClassifier,
        handlers: dict[Category, BaseHandler],
        reviewer: SafetyReviewer,
        fixed_responses: FixedResponseStore | None = None,
    ):
        self.classifier = classifier
        self.handlers = handlers
        self.reviewer = reviewer
        self.fixed_responses = fixed_responses or FixedResponseStore()

    def _handler_for(self, category: Category) -> BaseHandler:
        try:
            return self.handlers[category]
        except KeyError:
            raise ValueError(f"No handler registered for {category.value}") from None

    async def handle(
        self,
        message: str,
        history: Sequence[Turn] = (),
        context: CoachContext | None = None,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> GatewayResponse:
        """
        Handle one message and return the reviewed (or fixed) answer.

        Raises:
            ProviderAuthError: provider credentials are misconfigured
            ProviderExhaustedError: primary and secondary providers both failed
        """
        with TraceContext("chat", session_id=session_id, user_id=user_id) as trace:
            classification = await self._classify(message, trace)
            category = classification.category

            if self.fixed_responses.handles(category):
                return GatewayResponse(
                    text=self.fixed_responses.response_for(category),
                    classification=classification,
                )

            handler = self._handler_for(category)
            try:
                result = await handler.generate(message, history, context)
            except GatewayError as e:
                trace.log_generation(None, 0, False, error=type(e).__name__)
                raise
            trace.log_generation(result.provider, result.retries, result.fell_back)

            reviewed = await self._review(message, result.text, category, trace)
            return GatewayResponse(
                text=reviewed.text,
                classification=classification,
                verdict=reviewed.verdict,
                provider=result.provider,
                retries=result.retries,
                fell_back=result.fell_back,
                rewritten=reviewed.rewritten,
            )

    async def reply(
        self,
        message: str,
        history: Sequence[Turn] = (),
        context: CoachContext | None = None,
    ) -> str:
        """Non-streamed delivery: the single final string."""
        response = await self.handle(message, history, context)
        return response.text

    async def stream_events(
        self,
        message: str,
        history: Sequence[Turn] = (),
        context: CoachContext | None = None,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Streamed delivery as line-framable events.

        Yields ``{"type": "token", "value": ...}`` for each provisional
        fragment, then exactly one terminal event: ``{"reply": ...}`` with the
        reviewed text, or ``{"type": "error", "error": ...}`` with a calm
        message. Closing this iterator aborts the provider call.
        """
        with TraceContext("chat_stream", session_id=session_id, user_id=user_id) as trace:
            classification = await self._classify(message, trace)
            category = classification.category

            if self.fixed_responses.handles(category):
                yield {"reply": self.fixed_responses.response_for(category)}
                return

            handler = self._handler_for(category)
            stream = await handler.stream(message, history, context)
            parts: list[str] = []
            try:
                async with aclosing(stream):
                    async for fragment in stream:
                        parts.append(fragment)
                        yield {"type": "token", "value": fragment}
            except ProviderAuthError as e:
                trace.log_generation(
                    None,
                    stream.trace.retries,
                    stream.trace.fell_back,
                    error=type(e).__name__,
                )
                yield {"type": "error", "error": CONFIGURATION_ERROR_RESPONSE}
                return
            except GatewayError as e:
                trace.log_generation(
                    stream.trace.provider,
                    stream.trace.retries,
                    stream.trace.fell_back,
                    error=type(e).__name__,
                )
                yield {"type": "error", "error": SERVICE_UNAVAILABLE_RESPONSE}
                return

            trace.log_generation(
                stream.trace.provider, stream.trace.retries, stream.trace.fell_back
            )
            reviewed = await self._review(message, "".join(parts).strip(), category, trace)
            yield {"reply": reviewed.text}

    async def _classify(self, message: str, trace: TraceContext) -> Classification:
        classification = await self.classifier.classify(message)
        trace.log_triage(
            classification.category.value,
            classification.reason,
            classification.remote_used,
        )
        return classification

    async def _review(
        self,
        question: str,
        answer: str,
        category: Category,
        trace: TraceContext,
    ) -> ReviewedAnswer:
        reviewed = await self._apply_review(question, answer, category)
        trace.log_verdict(
            reviewed.verdict.outcome.value,
            reviewed.verdict.reasons,
            rewritten=reviewed.rewritten,
        )
        return reviewed

    async def _apply_review(
        self,
        question: str,
        answer: str,
        category: Category,
    ) -> ReviewedAnswer:
        """Review once; BLOCK substitutes the fallback, WARN may get one rewrite."""
        fallback = self.fixed_responses.safe_fallback
        if not answer:
            return ReviewedAnswer(fallback, SafetyVerdict.block("empty answer"))

        verdict = await self.reviewer.review(question, answer, category)
        if verdict.is_blocked:
            return ReviewedAnswer(fallback, verdict)
        if not (verdict.outcome is Verdict.WARN and verdict.needs_rewrite):
            return ReviewedAnswer(answer, verdict)

        try:
            rewritten = await self.reviewer.rewrite(question, answer, verdict, category)
        except (GatewayError, JudgeUnavailable) as e:
            logger.warning("rewrite_failed", error_type=type(e).__name__, error=str(e))
            return ReviewedAnswer(fallback, SafetyVerdict.block(*verdict.reasons, "rewrite failed"))

        second = await self.reviewer.review(question, rewritten, category)
        if second.is_blocked or (second.outcome is Verdict.WARN and second.needs_rewrite):
            return ReviewedAnswer(
                fallback,
                SafetyVerdict.block(*second.reasons, "rewrite failed review"),
            )
        return ReviewedAnswer(rewritten, second, rewritten=True)


def build_gateway(
    settings: Settings | None = None,
    adapters: list[BaseProviderAdapter] | None = None,
) -> Gateway:
    """Wire a gateway with explicit client instances built once."""
    settings = settings or get_settings()
    router = ModelRouter.from_settings(settings, adapters=adapters)
    return Gateway(
        classifier=TriageClassifier(router=router, settings=settings),
        handlers=build_handlers(router, settings=settings),
        reviewer=SafetyReviewer(router=router, settings=settings),
    )
