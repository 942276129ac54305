from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator

import pytest

from bioflo.config import Settings
from bioflo.errors import ProviderError, ProviderErrorClass
from bioflo.providers import BaseProviderAdapter, GenerationRequest

# Script item that never produces a fragment
HANG = object()


class FakeAdapter(BaseProviderAdapter):
    """Scripted provider: each call consumes the next script item.

    Items are reply strings, ``ProviderErrorClass`` values (raised as a
    ``ProviderError``), other exceptions (mapped through ``_classify_error``)
    or ``HANG``. The last item repeats once the script runs out.
    """

    def __init__(
        self,
        name: str,
        script: list | None = None,
        available: bool = True,
        delay: float = 0.0,
        default_model: str = "fake-model",
    ):
        super().__init__(default_model=default_model)
        self._name = name
        self.script = list(script or ["ok"])
        self.available = available
        self.delay = delay
        self.calls: list[tuple[GenerationRequest, str]] = []
        self.aborted = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_available(self) -> bool:
        return self.available

    def _next_item(self):
        if len(self.script) > 1:
            return self.script.pop(0)
        return self.script[0]

    async def _open_stream(
        self, request: GenerationRequest, model: str
    ) -> AsyncIterator[str]:
        self.calls.append((request, model))
        item = self._next_item()
        if isinstance(item, ProviderErrorClass):
            raise ProviderError(self.name, item, "scripted failure")
        if isinstance(item, BaseException):
            raise item
        if item is HANG:
            await asyncio.sleep(3600)
            return

        finished = False
        try:
            for piece in re.findall(r"\S+\s*", item):
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield piece
            finished = True
        finally:
            if not finished:
                self.aborted += 1

    def _classify_error(self, exc: Exception) -> ProviderErrorClass:
        if isinstance(exc, ConnectionError):
            return ProviderErrorClass.TRANSIENT
        return ProviderErrorClass.UNKNOWN


class SleepRecorder:
    """Stands in for asyncio.sleep so backoff tests run instantly."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="test-openai-key",
        anthropic_api_key="test-anthropic-key",
        google_api_key="",
        retry_base_delay=0.0,
        retry_max_jitter=0.0,
        remote_classification_enabled=False,
        judge_enabled=False,
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
