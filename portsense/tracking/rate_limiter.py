"""Pacing for tracking provider calls shared by every monitoring worker."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable


class RateLimiter:
    """Hands out call slots at ``requests_per_sec`` with up to ``burst`` back to back.

    Each call reserves the next free slot on a schedule, so concurrent
    workers queue up behind one another instead of racing for capacity.
    An idle limiter lets ``burst`` calls through at once.
    """

    def __init__(
        self,
        requests_per_sec: float = 2.5,
        burst: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_sec <= 0:
            raise ValueError("requests_per_sec must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self._interval = 1.0 / requests_per_sec
        self._tolerance = (burst - 1) * self._interval
        self._clock = clock
        self._next_slot = clock()
        self._lock = asyncio.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    def reserve(self) -> float:
        """Claim the next slot and return how long the caller must wait for it."""
        now = self._clock()
        slot = max(self._next_slot, now)
        self._next_slot = slot + self._interval
        return max(slot - self._tolerance - now, 0.0)

    def wait_time(self) -> float:
        """Seconds until a call could go out, without claiming the slot."""
        now = self._clock()
        return max(max(self._next_slot, now) - self._tolerance - now, 0.0)

    async def acquire(self) -> None:
        """Wait for this caller's slot."""
        async with self._lock:
            delay = self.reserve()
        if delay > 0:
            await asyncio.sleep(delay)
