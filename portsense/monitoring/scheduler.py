"""Periodic monitoring runs."""

from __future__ import annotations

import asyncio

import structlog

from portsense.monitoring.exceptions import CycleAlreadyRunningError
from portsense.monitoring.service import MonitoringService

logger = structlog.get_logger(__name__)


class MonitoringScheduler:
    """Background task that runs the monitoring service every ``interval_secs``.

    Usage::

        scheduler = MonitoringScheduler(service, interval_secs=900)
        await scheduler.start()
        # ...
        await scheduler.stop()
    """

    def __init__(
        self,
        service: MonitoringService,
        interval_secs: float = 900.0,
        purge_history: bool = True,
    ) -> None:
        self._service = service
        self._interval = interval_secs
        self._purge_history = purge_history
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._runs = 0

    @property
    def runs(self) -> int:
        return self._runs

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_now(self) -> None:
        """One scheduled tick: cycle, sweep, and history purge."""
        try:
            await self._service.run_monitoring_cycle()
        except CycleAlreadyRunningError:
            logger.info("scheduled_cycle_skipped", reason="already_running")
        if self._purge_history:
            await self._service.purge_history()
        self._runs += 1

    # ── Internal loop ───────────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_now()
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("monitoring_scheduler_loop_error")
            await asyncio.sleep(self._interval)
