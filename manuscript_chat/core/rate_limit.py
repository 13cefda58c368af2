"""
Request pacing — minimum wall-clock gap between outbound LLM calls.

Advisory self-throttling to stay under the provider's requests-per-minute
quota. One timestamp per ManuscriptSession, single process; overlapping
callers simply queue behind the session lock. This is not a distributed
rate limiter.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Gate that keeps at least ``min_gap_seconds`` between acquisitions.

    Usage::

        limiter = RateLimiter(min_gap_seconds=3.5)
        await limiter.acquire()     # may suspend the calling task
        response = await llm.ainvoke(...)

    ``clock`` and ``sleep`` are injectable so tests can drive time manually.
    """

    def __init__(
        self,
        min_gap_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_gap_seconds < 0:
            raise ValueError("min_gap_seconds must be >= 0")
        self._min_gap   = min_gap_seconds
        self._clock     = clock
        self._sleep     = sleep
        self._last_call: float | None = None

    async def acquire(self) -> float:
        """
        Wait out the remainder of the gap (if any), then stamp the call.

        Returns:
            Seconds spent waiting (0.0 when no wait was needed).
        """
        waited = 0.0
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self._min_gap:
                waited = self._min_gap - elapsed
                logger.debug("RateLimiter | waiting %.2fs before next request", waited)
                await self._sleep(waited)

        self._last_call = self._clock()
        return waited
