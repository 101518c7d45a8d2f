"""Tests for the provider call pacer."""

from __future__ import annotations

import asyncio

import pytest

from portsense.tracking.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ── Slot reservation ────────────────────────────────────────────


class TestReserve:
    def test_idle_limiter_allows_burst(self) -> None:
        limiter = RateLimiter(requests_per_sec=1.0, burst=3, clock=FakeClock())
        assert [limiter.reserve() for _ in range(3)] == [0.0, 0.0, 0.0]
        assert limiter.reserve() == pytest.approx(1.0)

    def test_waits_grow_with_queue(self) -> None:
        limiter = RateLimiter(requests_per_sec=2.0, burst=1, clock=FakeClock())
        assert limiter.reserve() == 0.0
        assert limiter.reserve() == pytest.approx(0.5)
        assert limiter.reserve() == pytest.approx(1.0)

    def test_capacity_recovers_over_time(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(requests_per_sec=2.0, burst=2, clock=clock)
        limiter.reserve()
        limiter.reserve()
        assert limiter.wait_time() == pytest.approx(0.5)
        clock.now = 0.5
        assert limiter.reserve() == 0.0

    def test_long_idle_does_not_exceed_burst(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(requests_per_sec=10.0, burst=2, clock=clock)
        clock.now = 100.0
        assert limiter.reserve() == 0.0
        assert limiter.reserve() == 0.0
        assert limiter.reserve() == pytest.approx(0.1)

    def test_wait_time_does_not_claim(self) -> None:
        limiter = RateLimiter(requests_per_sec=2.5, burst=1, clock=FakeClock())
        assert limiter.wait_time() == 0.0
        limiter.reserve()
        assert limiter.wait_time() == pytest.approx(0.4)
        assert limiter.wait_time() == pytest.approx(0.4)

    @pytest.mark.parametrize("rate,burst", [(0, 1), (-1.0, 1), (1.0, 0)])
    def test_invalid_settings_rejected(self, rate: float, burst: int) -> None:
        with pytest.raises(ValueError):
            RateLimiter(requests_per_sec=rate, burst=burst)


# ── acquire ─────────────────────────────────────────────────────


class TestAcquire:
    async def test_burst_does_not_wait(self) -> None:
        limiter = RateLimiter(requests_per_sec=1.0, burst=5)
        loop = asyncio.get_running_loop()
        start = loop.time()
        for _ in range(5):
            await limiter.acquire()
        assert loop.time() - start < 0.5

    async def test_waits_when_exhausted(self) -> None:
        limiter = RateLimiter(requests_per_sec=20.0, burst=1)
        loop = asyncio.get_running_loop()
        await limiter.acquire()
        start = loop.time()
        await limiter.acquire()
        assert loop.time() - start >= 0.03

    async def test_concurrent_callers_are_spaced(self) -> None:
        limiter = RateLimiter(requests_per_sec=50.0, burst=2)
        loop = asyncio.get_running_loop()
        start = loop.time()
        await asyncio.gather(*(limiter.acquire() for _ in range(6)))
        # Four calls beyond the burst at 20ms apart.
        assert loop.time() - start >= 0.07
