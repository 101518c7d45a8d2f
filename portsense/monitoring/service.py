"""MonitoringService — the manual/scheduled entry point for one monitoring run."""

from __future__ import annotations

import datetime
from collections.abc import Callable, Iterable

import structlog

from portsense.core.config import MonitoringConfig, get_settings
from portsense.core.types import EntityUpdate, TrackedEntity, utcnow
from portsense.monitoring.cycle import CycleReport, MonitoringCycle
from portsense.monitoring.exceptions import CycleAlreadyRunningError
from portsense.notify.dispatcher import NotificationDispatcher
from portsense.store.base import EntityStore
from portsense.store.exceptions import EntityNotFoundError, UnauthorizedUpdateError

logger = structlog.stdlib.get_logger()


class MonitoringService:
    """Runs a cycle, waits for its consumers, then sweeps unsent alerts.

    Also applies user edits to containers, which flow through the same
    ChangeEvent consumers as monitoring updates.

    Usage::

        service = MonitoringService(cycle, dispatcher, store)
        report = await service.run_monitoring_cycle()
        purged = await service.purge_history()
    """

    def __init__(
        self,
        cycle: MonitoringCycle,
        dispatcher: NotificationDispatcher,
        store: EntityStore,
        config: MonitoringConfig | None = None,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._cycle = cycle
        self._dispatcher = dispatcher
        self._store = store
        self._config = config or get_settings().monitoring
        self._clock = clock
        self._running = False

    @property
    def cycle(self) -> MonitoringCycle:
        return self._cycle

    @property
    def running(self) -> bool:
        """True from cycle start until the retry sweep has finished."""
        return self._running or self._cycle.running

    async def run_monitoring_cycle(self) -> CycleReport:
        """Run one cycle plus the retry sweep.

        The run counts as in flight until the sweep completes, so two
        triggers never sweep the same alerts concurrently.

        Raises:
            CycleAlreadyRunningError: Another run is in flight.
        """
        if self._running:
            raise CycleAlreadyRunningError("monitoring run already in progress")
        self._running = True
        try:
            report = await self._cycle.run()
            # Alerts from this cycle must finish their own dispatch before the sweep.
            await self._cycle.drain()
            try:
                report.retried = await self._dispatcher.retry_unsent(
                    self._config.sweep_batch_size
                )
            except Exception:
                logger.exception("unsent_alert_sweep_error", cycle_id=report.cycle_id)
        finally:
            self._running = False
        return report

    async def purge_history(self) -> int:
        """Delete history records older than the retention window."""
        cutoff = self._clock() - datetime.timedelta(days=self._config.history_retention_days)
        removed = await self._store.purge_history(cutoff)
        logger.info("history_purged", removed=removed, older_than=cutoff.isoformat())
        return removed

    # ── User edits ──────────────────────────────────────────────

    async def update_container(
        self,
        entity_id: str,
        update: EntityUpdate,
        actor_id: str,
    ) -> TrackedEntity:
        """Apply a user's edit and run the alert and broadcast consumers on it.

        Returns once every consumer has seen the change.

        Raises:
            EntityNotFoundError: No container with that id.
            UnauthorizedUpdateError: *actor_id* does not own the container.
        """
        entity = await self._store.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        event = await self._cycle.record_change(entity, update, actor_id=actor_id)
        await self._cycle.publish(event)
        return event.entity

    async def bulk_update_containers(
        self,
        edits: Iterable[tuple[str, EntityUpdate]],
        actor_id: str,
    ) -> list[TrackedEntity]:
        """Apply several edits; unknown or foreign containers are skipped."""
        updated: list[TrackedEntity] = []
        for entity_id, update in edits:
            try:
                updated.append(await self.update_container(entity_id, update, actor_id))
            except (EntityNotFoundError, UnauthorizedUpdateError) as exc:
                logger.warning(
                    "container_edit_skipped",
                    entity_id=entity_id,
                    actor_id=actor_id,
                    reason=type(exc).__name__,
                )
        return updated
