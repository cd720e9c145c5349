"""
Rate limiter — fixed-interval request slots plus exponential backoff retry.

One instance per platform (shared across that platform's sources in a
multi-source run). State is process-local and unsynchronized: callers use it
from a single asyncio task, one request at a time.

  interval     = 60 s / requests_per_minute
  retry delay  = base_delay × 2^attempt  (capped at max_delay, optional jitter)

Only TransientFetchError (timeouts, 5xx, 429) is retried; anything else is
raised straight away. When retries run out the last underlying error is
re-raised unchanged — the limiter defers errors, it never swallows them.
"""
import asyncio
import random
import time
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from pizzafeed.errors import RateLimitedError, TransientFetchError

T = TypeVar("T")

# ── Constants ─────────────────────────────────────────────────────────────────
DEFAULT_RPM         = 30
DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY  = 1.0    # seconds
DEFAULT_MAX_DELAY   = 60.0   # seconds


class RateLimiter:
    def __init__(
        self,
        requests_per_minute: float = DEFAULT_RPM,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.requests_per_minute = requests_per_minute
        self.interval    = 60.0 / requests_per_minute
        self.max_retries = max_retries
        self.base_delay  = base_delay
        self.max_delay   = max_delay
        self.jitter      = jitter
        self._sleep      = sleep
        self._clock      = clock
        self._last_request: float | None = None

    async def wait_for_slot(self) -> None:
        """Block until at least `interval` seconds have passed since the previous slot."""
        now = self._clock()
        if self._last_request is not None:
            wait = self.interval - (now - self._last_request)
            if wait > 0:
                await self._sleep(wait)
        self._last_request = self._clock()

    async def execute(self, fn: Callable[[], Awaitable[T]], context: str = "request") -> T:
        """
        Await `fn()` in the next free slot. Transient failures are retried with
        exponential backoff, at most `max_retries` attempts in total.
        """
        last_error: TransientFetchError | None = None

        for attempt in range(self.max_retries):
            await self.wait_for_slot()
            try:
                return await fn()
            except TransientFetchError as exc:
                last_error = exc
                if attempt + 1 >= self.max_retries:
                    break
                delay  = self.backoff(attempt)
                reason = "rate limited" if isinstance(exc, RateLimitedError) else "transient error"
                logger.warning(
                    f"[RateLimiter] {context}: {reason} "
                    f"(attempt {attempt + 1}/{self.max_retries}), backing off {delay:.1f}s — {exc}"
                )
                await self._sleep(delay)

        logger.error(f"[RateLimiter] {context}: giving up after {self.max_retries} attempts")
        raise last_error

    def backoff(self, attempt: int) -> float:
        delay = min(self.max_delay, self.base_delay * (2 ** attempt))
        if self.jitter:
            delay += delay * random.uniform(0, self.jitter)
        return delay

    def reset(self) -> None:
        self._last_request = None
