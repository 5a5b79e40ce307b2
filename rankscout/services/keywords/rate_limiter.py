"""Bounded-rate, bounded-concurrency executor for per-keyword vendor calls.

The limiter combines three controls:

- a concurrency ceiling (at most `max_concurrent` calls in flight),
- a minimum spacing between call starts (`min_interval_seconds`),
- a token bucket ("reservoir") that starts full and is topped up by
  `refill_amount` tokens every `refill_interval_seconds`, capped at the
  initial size, so short bursts are allowed without breaking the
  sustained rate.

Clock and sleep are injected so tests can drive time deterministically.
The limiter is an owned object; every pipeline run builds its own.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from rankscout.config import settings

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class TokenBucket:
    """Async token bucket refilled in fixed windows."""

    def __init__(
        self,
        *,
        capacity: int,
        refill_amount: int,
        refill_interval_seconds: float,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if refill_amount < 1 or refill_interval_seconds <= 0:
            raise ValueError("refill_amount and refill_interval_seconds must be positive")
        self.capacity = capacity
        self.refill_amount = refill_amount
        self.refill_interval_seconds = refill_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._window_started = clock()

    @property
    def tokens(self) -> int:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        elapsed = self._clock() - self._window_started
        windows = int(elapsed // self.refill_interval_seconds)
        if windows <= 0:
            return
        self._tokens = min(self.capacity, self._tokens + windows * self.refill_amount)
        self._window_started += windows * self.refill_interval_seconds

    async def acquire(self) -> None:
        """Take one token, sleeping until the next refill window if empty."""
        while True:
            self._refill()
            if self._tokens > 0:
                self._tokens -= 1
                return
            wait = self._window_started + self.refill_interval_seconds - self._clock()
            logger.debug("Token bucket empty, waiting for refill", extra={"wait_s": round(wait, 3)})
            await self._sleep(max(wait, 0.0))


class RateLimiter:
    """Schedules coroutine calls under the concurrency, spacing and bucket limits."""

    def __init__(
        self,
        *,
        max_concurrent: int = 5,
        min_interval_seconds: float = 0.2,
        reservoir: int = 10,
        refill_amount: int = 5,
        refill_interval_seconds: float = 1.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self._clock = clock
        self._sleep = sleep
        self._bucket = TokenBucket(
            capacity=reservoir,
            refill_amount=refill_amount,
            refill_interval_seconds=refill_interval_seconds,
            clock=clock,
            sleep=sleep,
        )
        self._slots = asyncio.Semaphore(max_concurrent)
        self._start_gate = asyncio.Lock()
        self._next_start_at: float | None = None

    @classmethod
    def from_settings(cls) -> RateLimiter:
        """Build a limiter with the configured keyword-lookup limits."""
        return cls(
            max_concurrent=settings.keyword_lookup_max_concurrent,
            min_interval_seconds=settings.keyword_lookup_min_interval_seconds,
            reservoir=settings.keyword_lookup_reservoir,
            refill_amount=settings.keyword_lookup_refill_amount,
            refill_interval_seconds=settings.keyword_lookup_refill_interval_seconds,
        )

    async def _wait_for_start_turn(self) -> None:
        async with self._start_gate:
            if self._next_start_at is not None:
                delay = self._next_start_at - self._clock()
                if delay > 0:
                    await self._sleep(delay)
            await self._bucket.acquire()
            self._next_start_at = self._clock() + self.min_interval_seconds

    async def schedule(
        self,
        call: Callable[[], Awaitable[_ResultT]],
    ) -> _ResultT:
        """Run `call` once a concurrency slot, its start turn and a token are granted."""
        async with self._slots:
            await self._wait_for_start_turn()
            return await call()


@dataclass(slots=True)
class FetchOutcome(Generic[_ResultT]):
    """Settled result of one fan-out call: a value or the error it raised."""

    key: str
    value: _ResultT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RateLimitedFetcher(Generic[_ResultT]):
    """Invoke a per-key lookup for many keys through a `RateLimiter`.

    Every call settles independently; a failing key never cancels its
    siblings. No retries happen here.
    """

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[_ResultT]],
        *,
        limiter: RateLimiter | None = None,
        on_settled: Callable[[FetchOutcome[_ResultT]], None] | None = None,
    ) -> None:
        self._lookup = lookup
        self._limiter = limiter or RateLimiter.from_settings()
        self._on_settled = on_settled

    async def _fetch_one(self, key: str) -> FetchOutcome[_ResultT]:
        try:
            value = await self._limiter.schedule(lambda: self._lookup(key))
            outcome: FetchOutcome[_ResultT] = FetchOutcome(key=key, value=value)
        except Exception as exc:
            logger.warning(
                "Keyword lookup failed",
                extra={"keyword": key, "failure_class": type(exc).__name__, "error": str(exc)},
            )
            outcome = FetchOutcome(key=key, error=exc)
        if self._on_settled is not None:
            self._on_settled(outcome)
        return outcome

    async def fetch_all(self, keys: Sequence[str]) -> list[FetchOutcome[_ResultT]]:
        """Return one outcome per key, in input order, once all calls settled."""
        if not keys:
            return []
        return list(await asyncio.gather(*(self._fetch_one(key) for key in keys)))
