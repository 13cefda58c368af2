"""
Unit Tests — RateLimiter

Time is driven by a fake clock; the injected sleep advances it, so no test
actually waits except the one real-sleep smoke test.
"""

from __future__ import annotations

import time

import pytest

from manuscript_chat.core.rate_limit import RateLimiter

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now    = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(3.5, clock=clock, sleep=clock.sleep)


class TestRateLimiter:

    async def test_first_call_does_not_wait(self, limiter, clock):
        assert await limiter.acquire() == 0.0
        assert clock.sleeps == []

    async def test_back_to_back_calls_wait_full_gap(self, limiter, clock):
        await limiter.acquire()
        waited = await limiter.acquire()
        assert waited == pytest.approx(3.5)
        assert clock.sleeps == [pytest.approx(3.5)]

    async def test_waits_only_the_remainder(self, limiter, clock):
        await limiter.acquire()
        clock.now += 1.0
        assert await limiter.acquire() == pytest.approx(2.5)

    async def test_no_wait_after_gap_elapsed(self, limiter, clock):
        await limiter.acquire()
        clock.now += 10.0
        assert await limiter.acquire() == 0.0

    async def test_timestamp_recorded_after_waiting(self, limiter, clock):
        await limiter.acquire()
        await limiter.acquire()              # waits 3.5, stamps at 103.5
        assert await limiter.acquire() == pytest.approx(3.5)

    def test_negative_gap_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(-1.0)

    async def test_real_sleep_enforces_gap(self):
        limiter = RateLimiter(0.05)
        await limiter.acquire()
        t0 = time.monotonic()
        await limiter.acquire()
        assert time.monotonic() - t0 >= 0.04
