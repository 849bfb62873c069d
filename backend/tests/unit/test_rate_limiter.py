"""Unit tests for the minimum-spacing rate limiter."""

import asyncio

import pytest

from travel_guide.services.rate_limiter import RateLimiter


class VirtualTime:
    """Clock and sleep that share one simulated timeline."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class TestRateLimiter:
    """Tests for RateLimiter.wait()."""

    def setup_method(self) -> None:
        self.time = VirtualTime()
        self.limiter = RateLimiter(1.0, clock=self.time.clock, sleep=self.time.sleep)

    def test_rejects_negative_interval(self) -> None:
        with pytest.raises(ValueError):
            RateLimiter(-1)

    async def test_first_call_resolves_immediately(self) -> None:
        await self.limiter.wait()
        assert self.time.sleeps == []
        assert self.limiter.last_request_time == 100.0

    async def test_second_call_waits_remaining_interval(self) -> None:
        await self.limiter.wait()
        self.time.now += 0.25
        await self.limiter.wait()

        assert self.time.sleeps == [pytest.approx(0.75)]
        assert self.limiter.last_request_time == pytest.approx(101.0)

    async def test_no_wait_after_interval_elapsed(self) -> None:
        await self.limiter.wait()
        self.time.now += 5
        await self.limiter.wait()
        assert self.time.sleeps == []

    async def test_concurrent_waiters_are_spaced(self) -> None:
        resolved: list[float] = []

        async def caller() -> None:
            await self.limiter.wait()
            resolved.append(self.time.now)

        await asyncio.gather(*(caller() for _ in range(4)))

        assert resolved == [pytest.approx(t) for t in (100.0, 101.0, 102.0, 103.0)]

    async def test_reset_forgets_last_request(self) -> None:
        await self.limiter.wait()
        self.limiter.reset()
        await self.limiter.wait()
        assert self.time.sleeps == []

    async def test_zero_interval_never_sleeps(self) -> None:
        limiter = RateLimiter(0, clock=self.time.clock, sleep=self.time.sleep)
        for _ in range(3):
            await limiter.wait()
        assert self.time.sleeps == []

    async def test_real_clock_spacing(self) -> None:
        loop = asyncio.get_running_loop()
        limiter = RateLimiter(0.05)
        start = loop.time()
        await limiter.wait()
        await limiter.wait()
        assert loop.time() - start >= 0.045
