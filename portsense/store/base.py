"""Abstract store interface — the read/write operations the pipeline needs."""

from __future__ import annotations

import abc
import datetime
from collections.abc import Iterable

from portsense.core.types import (
    Alert,
    ChannelResults,
    EntityUpdate,
    HistoryRecord,
    Recipient,
    TrackedEntity,
)


class EntityStore(abc.ABC):
    """Holds tracked containers, their history log, and alerts.

    Implementations must be safe to call from concurrent tasks.
    """

    # ── Containers ──────────────────────────────────────────────

    @abc.abstractmethod
    async def list_active(self) -> list[TrackedEntity]:
        """All containers with ``is_active`` set."""

    @abc.abstractmethod
    async def get(self, entity_id: str) -> TrackedEntity | None:
        """Look up one container by id."""

    @abc.abstractmethod
    async def update(
        self,
        entity_id: str,
        update: EntityUpdate,
        actor_id: str | None = None,
    ) -> TrackedEntity:
        """Apply a partial update and stamp ``last_updated``.

        Raises:
            EntityNotFoundError: No container with that id.
            UnauthorizedUpdateError: ``actor_id`` is given and does not own it.
        """

    @abc.abstractmethod
    async def append_history(self, record: HistoryRecord) -> None:
        """Append an immutable history snapshot."""

    @abc.abstractmethod
    async def list_history(self, entity_id: str) -> list[HistoryRecord]:
        """History snapshots for one container, oldest first."""

    @abc.abstractmethod
    async def purge_history(self, older_than: datetime.datetime) -> int:
        """Delete history recorded before *older_than*. Returns the count removed."""

    # ── Alerts ──────────────────────────────────────────────────

    @abc.abstractmethod
    async def list_alerts_since(
        self, entity_id: str, since: datetime.datetime
    ) -> list[Alert]:
        """Alerts for one container created at or after *since*, newest first."""

    @abc.abstractmethod
    async def list_alerts_for_user(
        self, user_id: str, since: datetime.datetime
    ) -> list[Alert]:
        """Alerts owned by a user created at or after *since*, newest first."""

    @abc.abstractmethod
    async def get_alert(self, alert_id: str) -> Alert | None:
        """Look up one alert by id."""

    @abc.abstractmethod
    async def create_alert(self, alert: Alert) -> Alert:
        """Persist a new alert."""

    @abc.abstractmethod
    async def set_alert_channel_flags(
        self, alert_id: str, results: ChannelResults, pending: bool = False
    ) -> Alert:
        """Write per-channel delivery outcome onto an alert and stamp the attempt.

        *pending* marks that an eligible channel failed and the alert should
        be picked up by the retry sweep.
        """

    @abc.abstractmethod
    async def acknowledge_alert(
        self, alert_id: str, actor_id: str | None = None
    ) -> Alert:
        """Set ``acknowledged_at`` unless already set (first write wins).

        Raises:
            AlertNotFoundError: No alert with that id.
            UnauthorizedUpdateError: ``actor_id`` is given and does not own it.
        """

    @abc.abstractmethod
    async def bulk_acknowledge(self, alert_ids: Iterable[str], actor_id: str) -> int:
        """Acknowledge the listed alerts owned by *actor_id*. Returns the count."""

    @abc.abstractmethod
    async def list_unsent_alerts(self, limit: int) -> list[Alert]:
        """Alerts still pending delivery, least recently attempted first."""

    # ── Users ───────────────────────────────────────────────────

    @abc.abstractmethod
    async def get_recipient(self, user_id: str) -> Recipient | None:
        """Contact details and channel preferences for a user."""
