"""
Model router: timeout, retry-with-backoff and single fallback across providers.

Policy for one request:
1. Try the primary provider. AUTH failures abort immediately.
2. RATE_LIMIT / TIMEOUT / NO_CONTENT / TRANSIENT failures are retried on the
   same provider up to ``max_retries`` times with exponential backoff plus
   random jitter.
3. Once the primary is exhausted, try exactly one secondary provider with the
   same request parameters.
4. If the secondary fails too, raise one ``ProviderExhaustedError`` that names
   both failures.

Streaming follows the same policy up to the first delivered fragment. After
that, a failure terminates the stream instead of switching provider, so the
consumer never receives text from two different answers.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import TypeVar

from bioflo.config import Settings
from bioflo.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderErrorClass,
    ProviderExhaustedError,
)
from bioflo.logging import get_logger
from bioflo.providers import BaseProviderAdapter, GenerationRequest, build_adapters

logger = get_logger(__name__)

T = TypeVar("T")

# A chain is the primary plus at most one fallback
MAX_CHAIN_LENGTH = 2


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with jitter."""

    max_retries: int = 2
    base_delay: float = 1.0
    max_jitter: float = 0.25

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            max_jitter=settings.retry_max_jitter,
        )

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        """Backoff before retry number ``attempt + 1`` (attempt is 0-based)."""
        jitter = (rng or random).uniform(0.0, self.max_jitter) if self.max_jitter else 0.0
        return self.base_delay * (2**attempt) + jitter

    def max_total_delay(self) -> float:
        """Upper bound on the summed backoff for one provider."""
        return sum(
            self.base_delay * (2**attempt) + self.max_jitter
            for attempt in range(self.max_retries)
        )


# Used for calls that get exactly one attempt (remote classification)
SINGLE_ATTEMPT = RetryPolicy(max_retries=0, base_delay=0.0, max_jitter=0.0)


@dataclass
class RouteTrace:
    """What happened while routing one request."""

    provider: str | None = None
    model: str | None = None
    retries: int = 0
    fell_back: bool = False
    failures: list[ProviderError] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Complete text plus the route that produced it."""

    text: str
    trace: RouteTrace

    @property
    def provider(self) -> str | None:
        return self.trace.provider

    @property
    def retries(self) -> int:
        return self.trace.retries

    @property
    def fell_back(self) -> bool:
        return self.trace.fell_back


class GenerationStream:
    """
    Ordered text fragments for one request.

    Iterate with ``async for``. Closing the stream (or cancelling the task
    consuming it) aborts the in-flight provider call.
    """

    def __init__(
        self,
        router: "ModelRouter",
        request: GenerationRequest,
        policy: RetryPolicy,
    ):
        self.request = request
        self.trace = RouteTrace()
        self._fragments = router._stream_fragments(request, policy, self.trace)

    def __aiter__(self) -> "GenerationStream":
        return self

    async def __anext__(self) -> str:
        return await self._fragments.__anext__()

    async def aclose(self) -> None:
        await self._fragments.aclose()

    async def collect(self) -> str:
        """Drain the stream and return the concatenated text."""
        parts: list[str] = []
        async with aclosing(self):
            async for fragment in self:
                parts.append(fragment)
        return "".join(parts)


class ModelRouter:
    """Orchestrates provider adapters for generation requests."""

    def __init__(
        self,
        adapters: Iterable[BaseProviderAdapter],
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.adapters: dict[str, BaseProviderAdapter] = {a.name: a for a in adapters}
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

        logger.info(
            "router_init",
            providers=[name for name, a in self.adapters.items() if a.is_available],
            max_retries=self.policy.max_retries,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        adapters: Iterable[BaseProviderAdapter] | None = None,
    ) -> "ModelRouter":
        return cls(
            adapters=adapters if adapters is not None else build_adapters(settings),
            policy=RetryPolicy.from_settings(settings),
        )

    def provider_chain(self, request: GenerationRequest) -> list[BaseProviderAdapter]:
        """Primary plus optional secondary: preferred, registered and available."""
        chain: list[BaseProviderAdapter] = []
        for name in request.providers:
            adapter = self.adapters.get(name)
            if adapter is None or not adapter.is_available or adapter in chain:
                continue
            chain.append(adapter)
            if len(chain) == MAX_CHAIN_LENGTH:
                break
        return chain

    async def generate(
        self,
        request: GenerationRequest,
        policy: RetryPolicy | None = None,
    ) -> GenerationResult:
        """
        Generate the complete text for a request.

        Raises:
            ProviderAuthError: a provider rejected its credentials
            ProviderExhaustedError: primary and secondary both failed
        """
        trace = RouteTrace()

        async def attempt(adapter: BaseProviderAdapter, model: str | None) -> str:
            return await self._complete_once(adapter, request, model)

        text = await self._run(request, policy or self.policy, trace, attempt)
        return GenerationResult(text=text, trace=trace)

    def stream(
        self,
        request: GenerationRequest,
        policy: RetryPolicy | None = None,
    ) -> GenerationStream:
        """Return a stream of fragments; routing starts on first iteration."""
        return GenerationStream(self, request, policy or self.policy)

    async def _run(
        self,
        request: GenerationRequest,
        policy: RetryPolicy,
        trace: RouteTrace,
        attempt: Callable[[BaseProviderAdapter, str | None], Awaitable[T]],
    ) -> T:
        chain = self.provider_chain(request)
        if not chain:
            raise ProviderExhaustedError(
                [],
                detail=f"no available provider among {list(request.providers)}",
            )

        for position, adapter in enumerate(chain):
            if position > 0:
                trace.fell_back = True
                logger.warning(
                    "provider_fallback",
                    from_provider=chain[0].name,
                    to_provider=adapter.name,
                )
            # The requested model identifier belongs to the requested primary only
            model = request.model if adapter.name == request.providers[0] else None
            try:
                result = await self._with_retries(
                    adapter, policy, trace, lambda: attempt(adapter, model)
                )
            except ProviderError as e:
                if e.error_class is ProviderErrorClass.AUTH:
                    raise ProviderAuthError(e) from e
                trace.failures.append(e)
                continue
            trace.provider = adapter.name
            trace.model = model or adapter.default_model
            return result

        raise ProviderExhaustedError(trace.failures)

    async def _with_retries(
        self,
        adapter: BaseProviderAdapter,
        policy: RetryPolicy,
        trace: RouteTrace,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        for attempt in range(policy.max_retries + 1):
            try:
                return await call()
            except ProviderError as e:
                logger.warning(
                    "provider_attempt_failed",
                    provider=adapter.name,
                    error_class=e.error_class.value,
                    attempt=attempt,
                )
                if not e.retryable or attempt >= policy.max_retries:
                    raise
                delay = policy.delay_for(attempt, self._rng)
                trace.retries += 1
                trace.delays.append(delay)
                await self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _complete_once(
        self,
        adapter: BaseProviderAdapter,
        request: GenerationRequest,
        model: str | None,
    ) -> str:
        try:
            async with asyncio.timeout(request.timeout):
                return await adapter.complete(request, model)
        except TimeoutError as e:
            raise ProviderError(
                adapter.name,
                ProviderErrorClass.TIMEOUT,
                f"no response within {request.timeout}s",
            ) from e

    async def _open_once(
        self,
        adapter: BaseProviderAdapter,
        request: GenerationRequest,
        model: str | None,
    ) -> tuple[str, AsyncIterator[str]]:
        """Open a provider stream and wait for its first fragment."""
        fragments = adapter.stream(request, model)
        try:
            async with asyncio.timeout(request.timeout):
                first = await anext(fragments)
        except StopAsyncIteration:
            await fragments.aclose()
            raise ProviderError(
                adapter.name,
                ProviderErrorClass.NO_CONTENT,
                "stream ended without content",
            ) from None
        except TimeoutError as e:
            await fragments.aclose()
            raise ProviderError(
                adapter.name,
                ProviderErrorClass.TIMEOUT,
                f"no first fragment within {request.timeout}s",
            ) from e
        except BaseException:
            await fragments.aclose()
            raise
        return first, fragments

    async def _stream_fragments(
        self,
        request: GenerationRequest,
        policy: RetryPolicy,
        trace: RouteTrace,
    ) -> AsyncIterator[str]:
        async def attempt(
            adapter: BaseProviderAdapter, model: str | None
        ) -> tuple[str, AsyncIterator[str]]:
            return await self._open_once(adapter, request, model)

        first, fragments = await self._run(request, policy, trace, attempt)
        async with aclosing(fragments):
            yield first
            while True:
                try:
                    # Idle timeout between fragments
                    async with asyncio.timeout(request.timeout):
                        fragment = await anext(fragments)
                except StopAsyncIteration:
                    return
                except TimeoutError as e:
                    raise ProviderError(
                        trace.provider or "unknown",
                        ProviderErrorClass.TIMEOUT,
                        f"stream stalled for {request.timeout}s",
                    ) from e
                yield fragment
