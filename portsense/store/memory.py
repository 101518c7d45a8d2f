"""InMemoryEntityStore — dict-backed store used by tests and the mock deployment."""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Callable, Iterable

from portsense.core.types import (
    Alert,
    AlertStats,
    ChannelResults,
    EntityUpdate,
    HistoryRecord,
    Recipient,
    TrackedEntity,
    utcnow,
)
from portsense.store.base import EntityStore
from portsense.store.exceptions import (
    AlertNotFoundError,
    EntityNotFoundError,
    UnauthorizedUpdateError,
)

Clock = Callable[[], datetime.datetime]


class InMemoryEntityStore(EntityStore):
    """Keeps containers, history, alerts and recipients in memory.

    A single ``asyncio.Lock`` serialises writes so concurrent monitoring
    workers never interleave a read-modify-write on the same record.
    """

    def __init__(
        self,
        entities: Iterable[TrackedEntity] = (),
        recipients: Iterable[Recipient] = (),
        clock: Clock = utcnow,
    ) -> None:
        self._entities: dict[str, TrackedEntity] = {e.id: e for e in entities}
        self._recipients: dict[str, Recipient] = {r.user_id: r for r in recipients}
        self._history: list[HistoryRecord] = []
        self._alerts: dict[str, Alert] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    # ── Seeding (test / demo helpers) ───────────────────────────

    def add_entity(self, entity: TrackedEntity) -> None:
        self._entities[entity.id] = entity

    def add_recipient(self, recipient: Recipient) -> None:
        self._recipients[recipient.user_id] = recipient

    @property
    def alerts(self) -> list[Alert]:
        """All alerts, oldest first."""
        return sorted(self._alerts.values(), key=lambda a: a.created_at)

    # ── Containers ──────────────────────────────────────────────

    async def list_active(self) -> list[TrackedEntity]:
        return [e for e in self._entities.values() if e.is_active]

    async def get(self, entity_id: str) -> TrackedEntity | None:
        return self._entities.get(entity_id)

    async def update(
        self,
        entity_id: str,
        update: EntityUpdate,
        actor_id: str | None = None,
    ) -> TrackedEntity:
        async with self._lock:
            current = self._entities.get(entity_id)
            if current is None:
                raise EntityNotFoundError(entity_id)
            if actor_id is not None and current.owner_id != actor_id:
                raise UnauthorizedUpdateError(
                    f"user {actor_id} does not own container {entity_id}"
                )
            # last_updated never moves backwards
            stamp = max(self._clock(), current.last_updated)
            updated = current.model_copy(
                update={**update.changes(), "last_updated": stamp}
            )
            self._entities[entity_id] = updated
            return updated

    async def append_history(self, record: HistoryRecord) -> None:
        async with self._lock:
            self._history.append(record)

    async def list_history(self, entity_id: str) -> list[HistoryRecord]:
        return sorted(
            (h for h in self._history if h.entity_id == entity_id),
            key=lambda h: h.recorded_at,
        )

    async def purge_history(self, older_than: datetime.datetime) -> int:
        async with self._lock:
            before = len(self._history)
            self._history = [h for h in self._history if h.recorded_at >= older_than]
            return before - len(self._history)

    # ── Alerts ──────────────────────────────────────────────────

    async def list_alerts_since(
        self, entity_id: str, since: datetime.datetime
    ) -> list[Alert]:
        return sorted(
            (
                a for a in self._alerts.values()
                if a.entity_id == entity_id and a.created_at >= since
            ),
            key=lambda a: a.created_at,
            reverse=True,
        )

    async def list_alerts_for_user(
        self, user_id: str, since: datetime.datetime
    ) -> list[Alert]:
        return sorted(
            (
                a for a in self._alerts.values()
                if a.owner_id == user_id and a.created_at >= since
            ),
            key=lambda a: a.created_at,
            reverse=True,
        )

    async def get_alert(self, alert_id: str) -> Alert | None:
        return self._alerts.get(alert_id)

    async def create_alert(self, alert: Alert) -> Alert:
        async with self._lock:
            self._alerts[alert.id] = alert
            return alert

    async def set_alert_channel_flags(
        self, alert_id: str, results: ChannelResults, pending: bool = False
    ) -> Alert:
        async with self._lock:
            alert = self._require_alert(alert_id)
            updated = alert.model_copy(update={
                "email_sent": results.email,
                "sms_sent": results.sms,
                "chat_sent": results.chat,
                "delivery_pending": pending,
                "last_dispatch_at": self._clock(),
            })
            self._alerts[alert_id] = updated
            return updated

    async def acknowledge_alert(
        self, alert_id: str, actor_id: str | None = None
    ) -> Alert:
        async with self._lock:
            alert = self._require_alert(alert_id)
            if actor_id is not None and alert.owner_id != actor_id:
                raise UnauthorizedUpdateError(
                    f"user {actor_id} does not own alert {alert_id}"
                )
            return self._acknowledge(alert)

    async def bulk_acknowledge(self, alert_ids: Iterable[str], actor_id: str) -> int:
        count = 0
        async with self._lock:
            for alert_id in alert_ids:
                alert = self._alerts.get(alert_id)
                if alert is None or alert.owner_id != actor_id:
                    continue
                self._acknowledge(alert)
                count += 1
        return count

    async def list_unsent_alerts(self, limit: int) -> list[Alert]:
        pending = [a for a in self._alerts.values() if a.delivery_pending]
        # Never-dispatched first, then least recently attempted.
        pending.sort(key=lambda a: (
            a.last_dispatch_at is not None,
            a.last_dispatch_at or a.created_at,
        ))
        return pending[:limit]

    # ── Users ───────────────────────────────────────────────────

    async def get_recipient(self, user_id: str) -> Recipient | None:
        return self._recipients.get(user_id)

    # ── Internal ────────────────────────────────────────────────

    def _require_alert(self, alert_id: str) -> Alert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def _acknowledge(self, alert: Alert) -> Alert:
        if alert.acknowledged_at is not None:
            return alert
        updated = alert.model_copy(update={"acknowledged_at": self._clock()})
        self._alerts[alert.id] = updated
        return updated


def alert_stats(alerts: Iterable[Alert]) -> AlertStats:
    """Summarise alerts by category, severity, and acknowledgement."""
    stats = AlertStats()
    for alert in alerts:
        stats.total += 1
        if alert.acknowledged_at is None:
            stats.unread += 1
        cat = alert.category.value
        stats.by_category[cat] = stats.by_category.get(cat, 0) + 1
        sev = alert.severity.value
        stats.by_severity[sev] = stats.by_severity.get(sev, 0) + 1
    return stats
