"""MonitoringCycle — refresh every active container from the tracking provider."""

from __future__ import annotations

import asyncio
import datetime
import uuid
from collections.abc import Awaitable, Callable
from enum import StrEnum

import structlog
from pydantic import BaseModel

from portsense.core.config import MonitoringConfig, get_settings
from portsense.core.types import ChangeEvent, EntityUpdate, HistoryRecord, TrackedEntity, utcnow
from portsense.monitoring.analysis import build_update, classify_change
from portsense.monitoring.exceptions import CycleAlreadyRunningError
from portsense.store.base import EntityStore
from portsense.tracking.base import TrackingProvider
from portsense.tracking.rate_limiter import RateLimiter

logger = structlog.stdlib.get_logger()

ChangeEventCallback = Callable[[ChangeEvent], Awaitable[None] | None]


class EntityOutcome(StrEnum):
    """What happened to one container during a cycle."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class CycleReport(BaseModel):
    """Summary of one monitoring cycle."""

    cycle_id: str = ""
    success: bool = True
    rejected: bool = False
    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    not_found: int = 0
    failed: int = 0
    started_at: datetime.datetime | None = None
    finished_at: datetime.datetime | None = None
    retried: int = 0
    error: str | None = None

    def record(self, outcome: EntityOutcome) -> None:
        self.processed += 1
        if outcome == EntityOutcome.UPDATED:
            self.updated += 1
        elif outcome == EntityOutcome.UNCHANGED:
            self.unchanged += 1
        elif outcome == EntityOutcome.NOT_FOUND:
            self.not_found += 1
        else:
            self.failed += 1


class MonitoringCycle:
    """Polls the tracking provider for every active container.

    - At most one cycle is in flight; a concurrent ``run()`` is rejected
      with CycleAlreadyRunningError, never queued.
    - Containers are drained from a queue by ``batch_size`` workers; every
      provider call waits on the shared rate limiter and is bounded by
      ``provider_timeout_secs``.
    - A significant change updates the store, appends a history record, and
      emits a ChangeEvent to each registered consumer in its own task, so a
      slow or failing consumer never holds up the cycle.

    Usage::

        cycle = MonitoringCycle(store, provider)
        cycle.on_change(alert_service.on_change_event)
        cycle.on_change(hub.on_change_event)
        report = await cycle.run()
    """

    def __init__(
        self,
        store: EntityStore,
        provider: TrackingProvider,
        config: MonitoringConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._config = config or get_settings().monitoring
        self._store = store
        self._provider = provider
        self._limiter = rate_limiter or RateLimiter(
            requests_per_sec=self._config.requests_per_sec,
            burst=self._config.burst,
        )
        self._clock = clock
        self._callbacks: list[ChangeEventCallback] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._running = False
        self._last_report: CycleReport | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    def on_change(self, callback: ChangeEventCallback) -> None:
        """Register a consumer for ChangeEvents."""
        self._callbacks.append(callback)

    # ── Running ─────────────────────────────────────────────────

    async def run(self) -> CycleReport:
        """Run one full cycle.

        Raises:
            CycleAlreadyRunningError: Another cycle is in flight.
        """
        if self._running:
            raise CycleAlreadyRunningError("monitoring cycle already running")
        self._running = True

        report = CycleReport(cycle_id=uuid.uuid4().hex[:12], started_at=self._clock())
        try:
            with structlog.contextvars.bound_contextvars(cycle_id=report.cycle_id):
                await self._run(report)
        finally:
            self._running = False
            report.finished_at = self._clock()
            self._last_report = report
        return report

    async def run_safe(self) -> CycleReport:
        """Like ``run()`` but reports rejection and failure instead of raising."""
        try:
            return await self.run()
        except CycleAlreadyRunningError:
            logger.warning("monitoring_cycle_rejected")
            return CycleReport(success=False, rejected=True, error="already running")
        except Exception as exc:
            logger.exception("monitoring_cycle_failed")
            return CycleReport(success=False, error=repr(exc))

    async def _run(self, report: CycleReport) -> None:
        entities = await self._store.list_active()
        if not entities:
            logger.info("monitoring_cycle_empty")
            return

        logger.info("monitoring_cycle_started", containers=len(entities))

        queue: asyncio.Queue[TrackedEntity] = asyncio.Queue()
        for entity in entities:
            queue.put_nowait(entity)

        workers = min(max(1, self._config.batch_size), len(entities))
        await asyncio.gather(*(self._worker(queue, report) for _ in range(workers)))

        logger.info(
            "monitoring_cycle_completed",
            processed=report.processed,
            updated=report.updated,
            not_found=report.not_found,
            failed=report.failed,
        )

    async def _worker(self, queue: asyncio.Queue[TrackedEntity], report: CycleReport) -> None:
        while True:
            try:
                entity = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcome = await self.process_entity(entity)
            report.record(outcome)

    # ── Per-container processing ────────────────────────────────

    async def process_entity(self, entity: TrackedEntity) -> EntityOutcome:
        """Refresh one container. Never raises."""
        try:
            await self._limiter.acquire()
            async with asyncio.timeout(self._config.provider_timeout_secs):
                snapshot = await self._provider.track(entity.reference)
        except TimeoutError:
            logger.warning(
                "tracking_provider_timeout",
                entity_id=entity.id,
                container_id=entity.reference,
                timeout_secs=self._config.provider_timeout_secs,
            )
            return EntityOutcome.FAILED
        except Exception:
            logger.exception(
                "tracking_provider_error",
                entity_id=entity.id,
                container_id=entity.reference,
            )
            return EntityOutcome.FAILED

        if snapshot is None:
            logger.info("container_not_found", entity_id=entity.id, container_id=entity.reference)
            return EntityOutcome.NOT_FOUND

        update = build_update(entity, snapshot, self._config)
        if update is None:
            return EntityOutcome.UNCHANGED

        try:
            event = await self.record_change(entity, update)
        except Exception:
            logger.exception("container_update_error", entity_id=entity.id)
            return EntityOutcome.FAILED

        self._emit(event)
        return EntityOutcome.UPDATED

    async def record_change(
        self,
        entity: TrackedEntity,
        update: EntityUpdate,
        actor_id: str | None = None,
    ) -> ChangeEvent:
        """Write *update*, append a history record, and build the ChangeEvent.

        Nothing is emitted; the caller decides how consumers see the event.

        Raises:
            EntityNotFoundError: The container no longer exists.
            UnauthorizedUpdateError: *actor_id* does not own the container.
        """
        updated = await self._store.update(entity.id, update, actor_id=actor_id)
        await self._store.append_history(HistoryRecord(
            entity_id=updated.id,
            status=updated.status,
            location=updated.current_location,
            delay_hours=updated.delay_hours,
            coordinates=updated.coordinates,
            eta=updated.eta,
            recorded_at=updated.last_updated,
        ))
        event = ChangeEvent(
            entity=updated,
            previous_status=entity.status,
            new_status=updated.status,
            change_category=classify_change(entity, update),
            timestamp=updated.last_updated,
        )
        logger.info(
            "container_updated",
            entity_id=entity.id,
            container_id=entity.reference,
            status=updated.status,
            delay_hours=updated.delay_hours,
            change=event.change_category.value,
            actor_id=actor_id,
        )
        return event

    # ── Event fan-out ───────────────────────────────────────────

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver *event* to every consumer and wait for all of them."""
        await asyncio.gather(*(self._deliver(cb, event) for cb in self._callbacks))

    def _emit(self, event: ChangeEvent) -> None:
        for cb in self._callbacks:
            task = asyncio.create_task(self._deliver(cb, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, cb: ChangeEventCallback, event: ChangeEvent) -> None:
        try:
            result = cb(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception(
                "change_event_callback_error",
                entity_id=event.entity.id,
                change=event.change_category.value,
            )

    async def drain(self) -> None:
        """Wait for every in-flight ChangeEvent consumer to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
