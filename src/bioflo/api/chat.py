from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from datetime import date
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from bioflo.api.deps import provide_gateway, provide_plan_generator
from bioflo.errors import ProviderAuthError, ProviderExhaustedError
from bioflo.gateway import Gateway
from bioflo.logging import get_logger
from bioflo.plans import PlanGenerator, TodayPlan, WeeklyDebrief
from bioflo.prompts import CoachContext
from bioflo.providers import Turn
from bioflo.triage.fixed_responses import (
    CONFIGURATION_ERROR_RESPONSE,
    SERVICE_UNAVAILABLE_RESPONSE,
)

logger = get_logger(__name__)

router = APIRouter(tags=["chat"])


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=8000)
    history: list[ChatTurn] = Field(default_factory=list)
    context: Optional[CoachContext] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None

    def turns(self) -> list[Turn]:
        return [Turn(role=t.role, content=t.content) for t in self.history]


class ChatResponse(BaseModel):
    reply: str
    category: str
    verdict: Optional[str] = None
    rewritten: bool = False


class TodayPlanRequest(BaseModel):
    context: Optional[CoachContext] = None
    day: Optional[date] = None


class WeeklyDebriefRequest(BaseModel):
    summary: str = ""


def _configuration_error(error: ProviderAuthError) -> HTTPException:
    logger.error("provider_auth_error", provider=error.provider)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=CONFIGURATION_ERROR_RESPONSE,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    gateway: Gateway = Depends(provide_gateway),
) -> ChatResponse:
    try:
        response = await gateway.handle(
            request.message,
            request.turns(),
            request.context,
            session_id=request.session_id,
            user_id=request.user_id,
        )
    except ProviderAuthError as e:
        raise _configuration_error(e) from e
    except ProviderExhaustedError as e:
        logger.error("chat_providers_exhausted", providers=e.providers)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=SERVICE_UNAVAILABLE_RESPONSE,
        ) from e

    return ChatResponse(
        reply=response.text,
        category=response.category.value,
        verdict=response.verdict.outcome.value if response.verdict else None,
        rewritten=response.rewritten,
    )


async def _ndjson(events: AsyncIterator[dict[str, Any]]) -> AsyncIterator[str]:
    """Frame gateway events as newline-delimited JSON."""
    async with aclosing(events):
        async for event in events:
            yield json.dumps(event) + "\n"


@router.post("/chat/stream")
async def chat_stream(
    request: ChatRequest,
    gateway: Gateway = Depends(provide_gateway),
) -> StreamingResponse:
    events = gateway.stream_events(
        request.message,
        request.turns(),
        request.context,
        session_id=request.session_id,
        user_id=request.user_id,
    )
    return StreamingResponse(_ndjson(events), media_type="application/x-ndjson")


@router.post("/plans/today", response_model=TodayPlan)
async def today_plan(
    request: TodayPlanRequest,
    plans: PlanGenerator = Depends(provide_plan_generator),
) -> TodayPlan:
    try:
        return await plans.today_plan(request.context, request.day)
    except ProviderAuthError as e:
        raise _configuration_error(e) from e


@router.post("/plans/weekly-debrief", response_model=WeeklyDebrief)
async def weekly_debrief(
    request: WeeklyDebriefRequest,
    plans: PlanGenerator = Depends(provide_plan_generator),
) -> WeeklyDebrief:
    try:
        return await plans.weekly_debrief(request.summary)
    except ProviderAuthError as e:
        raise _configuration_error(e) from e


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
