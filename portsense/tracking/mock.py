"""Deterministic tracking provider for demos, local runs, and tests."""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Callable

from portsense.core.types import ProviderLocation, ProviderSnapshot, utcnow
from portsense.tracking.base import TrackingProvider

_SINGAPORE = ProviderLocation(lat=1.2966, lon=103.8558, name="Port of Singapore")
_ROTTERDAM_ANCHORAGE = ProviderLocation(
    lat=51.9496, lon=4.1453, name="Rotterdam Anchorage (congestion)"
)


class MockTrackingProvider(TrackingProvider):
    """Answers from container-id markers instead of a real upstream.

    - ``404`` in the id → not found
    - ``DELAY`` → status "Delayed", ETA one week out
    - ``CONGEST`` → held at a congested anchorage
    - anything else → "In Transit" at Singapore, ETA five days out
    """

    def __init__(
        self,
        latency_secs: float = 0.0,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._latency_secs = latency_secs
        self._clock = clock
        self.calls: list[str] = []

    async def track(self, container_id: str) -> ProviderSnapshot | None:
        self.calls.append(container_id)
        if self._latency_secs > 0:
            await asyncio.sleep(self._latency_secs)

        if "404" in container_id:
            return None

        now = self._clock()
        snapshot = ProviderSnapshot(
            status="In Transit",
            location=_SINGAPORE,
            eta=now + datetime.timedelta(days=5),
            last_port="Port Klang",
            next_port="Rotterdam",
            vessel="MAERSK CHICAGO",
        )

        upper = container_id.upper()
        if "DELAY" in upper:
            snapshot = snapshot.model_copy(update={
                "status": "Delayed",
                "eta": now + datetime.timedelta(days=7),
            })
        if "CONGEST" in upper:
            snapshot = snapshot.model_copy(update={
                "status": "Waiting at Anchorage",
                "location": _ROTTERDAM_ANCHORAGE,
            })
        return snapshot
