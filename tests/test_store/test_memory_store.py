"""Tests for InMemoryEntityStore — updates, history, alerts, acknowledgement."""

from __future__ import annotations

import asyncio
import datetime

import pytest

from portsense.core.types import (
    Alert,
    AlertCategory,
    ChannelResults,
    EntityUpdate,
    HistoryRecord,
    Recipient,
    Severity,
    TrackedEntity,
)
from portsense.store.exceptions import (
    AlertNotFoundError,
    EntityNotFoundError,
    UnauthorizedUpdateError,
)
from portsense.store.memory import InMemoryEntityStore, alert_stats

T0 = datetime.datetime(2026, 10, 1, 12, 0, tzinfo=datetime.UTC)


# ── Helpers ─────────────────────────────────────────────────────


class Clock:
    def __init__(self, now: datetime.datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now


def _entity(**kw: object) -> TrackedEntity:
    defaults: dict[str, object] = {
        "id": "c-1",
        "container_id": "MSCU1",
        "owner_id": "u-1",
        "status": "In Transit",
        "current_location": "Port of Shanghai",
        "last_updated": T0 - datetime.timedelta(hours=1),
    }
    defaults.update(kw)
    return TrackedEntity(**defaults)  # type: ignore[arg-type]


def _alert(**kw: object) -> Alert:
    defaults: dict[str, object] = {
        "entity_id": "c-1",
        "owner_id": "u-1",
        "rule_id": "minor-delay-12h",
        "category": AlertCategory.DELAY,
        "severity": Severity.LOW,
        "title": "Container MSCU1 Delayed (14h)",
        "message": "msg",
        "created_at": T0,
    }
    defaults.update(kw)
    return Alert(**defaults)  # type: ignore[arg-type]


# ── Containers ──────────────────────────────────────────────────


class TestUpdate:
    async def test_applies_fields_and_stamps(self) -> None:
        store = InMemoryEntityStore([_entity()], clock=Clock())
        updated = await store.update("c-1", EntityUpdate(status="Delayed", delay_hours=30))
        assert updated.status == "Delayed"
        assert updated.delay_hours == 30
        assert updated.current_location == "Port of Shanghai"
        assert updated.last_updated == T0
        assert (await store.get("c-1")) == updated

    async def test_last_updated_monotonic(self) -> None:
        later = T0 + datetime.timedelta(hours=5)
        store = InMemoryEntityStore([_entity(last_updated=later)], clock=Clock())
        updated = await store.update("c-1", EntityUpdate(status="Delayed"))
        assert updated.last_updated == later

    async def test_missing_entity(self) -> None:
        store = InMemoryEntityStore()
        with pytest.raises(EntityNotFoundError):
            await store.update("nope", EntityUpdate(status="x"))

    async def test_wrong_owner_leaves_record_untouched(self) -> None:
        original = _entity()
        store = InMemoryEntityStore([original], clock=Clock())
        with pytest.raises(UnauthorizedUpdateError):
            await store.update("c-1", EntityUpdate(status="Seized"), actor_id="intruder")
        assert await store.get("c-1") == original

    async def test_owner_may_update(self) -> None:
        store = InMemoryEntityStore([_entity()], clock=Clock())
        updated = await store.update("c-1", EntityUpdate(status="Delivered"), actor_id="u-1")
        assert updated.status == "Delivered"

    async def test_concurrent_updates_last_writer_wins(self) -> None:
        store = InMemoryEntityStore([_entity()], clock=Clock())
        await asyncio.gather(
            store.update("c-1", EntityUpdate(status="A")),
            store.update("c-1", EntityUpdate(delay_hours=9)),
        )
        final = await store.get("c-1")
        assert final is not None
        assert final.status == "A"
        assert final.delay_hours == 9

    async def test_list_active_excludes_inactive(self) -> None:
        store = InMemoryEntityStore([_entity(), _entity(id="c-2", is_active=False)])
        active = await store.list_active()
        assert [e.id for e in active] == ["c-1"]


# ── History ─────────────────────────────────────────────────────


class TestHistory:
    async def test_append_and_list_ordered(self) -> None:
        store = InMemoryEntityStore()
        later = HistoryRecord(entity_id="c-1", status="b", location="l", delay_hours=0, recorded_at=T0)
        earlier = HistoryRecord(
            entity_id="c-1", status="a", location="l", delay_hours=0,
            recorded_at=T0 - datetime.timedelta(hours=1),
        )
        await store.append_history(later)
        await store.append_history(earlier)
        await store.append_history(HistoryRecord(entity_id="c-2", status="x", location="l", delay_hours=0))
        assert [h.status for h in await store.list_history("c-1")] == ["a", "b"]

    async def test_purge_older_than(self) -> None:
        store = InMemoryEntityStore()
        await store.append_history(HistoryRecord(
            entity_id="c-1", status="old", location="l", delay_hours=0,
            recorded_at=T0 - datetime.timedelta(days=31),
        ))
        await store.append_history(HistoryRecord(
            entity_id="c-1", status="new", location="l", delay_hours=0, recorded_at=T0,
        ))
        removed = await store.purge_history(T0 - datetime.timedelta(days=30))
        assert removed == 1
        assert [h.status for h in await store.list_history("c-1")] == ["new"]


# ── Alerts ──────────────────────────────────────────────────────


class TestAlerts:
    async def test_list_since_filters_and_orders(self) -> None:
        store = InMemoryEntityStore()
        old = await store.create_alert(_alert(created_at=T0 - datetime.timedelta(days=2)))
        a = await store.create_alert(_alert(created_at=T0 - datetime.timedelta(hours=2)))
        b = await store.create_alert(_alert(created_at=T0))
        await store.create_alert(_alert(entity_id="c-2"))
        recent = await store.list_alerts_since("c-1", T0 - datetime.timedelta(hours=24))
        assert [x.id for x in recent] == [b.id, a.id]
        assert old.id not in {x.id for x in recent}

    async def test_set_channel_flags(self) -> None:
        store = InMemoryEntityStore()
        alert = await store.create_alert(_alert())
        updated = await store.set_alert_channel_flags(alert.id, ChannelResults(email=True, chat=True))
        assert (updated.email_sent, updated.sms_sent, updated.chat_sent) == (True, False, True)

    async def test_set_flags_unknown_alert(self) -> None:
        with pytest.raises(AlertNotFoundError):
            await InMemoryEntityStore().set_alert_channel_flags("nope", ChannelResults())

    async def test_unsent_oldest_first_with_limit(self) -> None:
        store = InMemoryEntityStore()
        first = await store.create_alert(_alert(created_at=T0 - datetime.timedelta(hours=3)))
        sent = await store.create_alert(
            _alert(created_at=T0 - datetime.timedelta(hours=2), delivery_pending=False)
        )
        second = await store.create_alert(_alert(created_at=T0 - datetime.timedelta(hours=1)))
        await store.create_alert(_alert(created_at=T0))
        unsent = await store.list_unsent_alerts(2)
        assert [a.id for a in unsent] == [first.id, second.id]
        assert sent.id not in {a.id for a in unsent}

    async def test_flags_stamp_attempt_and_pending(self) -> None:
        store = InMemoryEntityStore(clock=Clock())
        alert = await store.create_alert(_alert())
        assert alert.delivery_pending is True

        done = await store.set_alert_channel_flags(alert.id, ChannelResults(chat=True))
        assert done.delivery_pending is False
        assert done.last_dispatch_at == T0
        assert await store.list_unsent_alerts(10) == []

    async def test_unsent_rotates_by_last_attempt(self) -> None:
        clock = Clock()
        store = InMemoryEntityStore(clock=clock)
        old = await store.create_alert(_alert(created_at=T0 - datetime.timedelta(hours=5)))
        new = await store.create_alert(_alert(created_at=T0))
        await store.set_alert_channel_flags(old.id, ChannelResults(), pending=True)

        # Never-attempted alerts come before ones already retried.
        assert [a.id for a in await store.list_unsent_alerts(10)] == [new.id, old.id]

        clock.now = T0 + datetime.timedelta(minutes=15)
        await store.set_alert_channel_flags(new.id, ChannelResults(), pending=True)
        assert [a.id for a in await store.list_unsent_alerts(1)] == [old.id]


class TestAcknowledge:
    async def test_first_acknowledgement_wins(self) -> None:
        clock = Clock()
        store = InMemoryEntityStore(clock=clock)
        alert = await store.create_alert(_alert())
        first = await store.acknowledge_alert(alert.id)
        clock.now = T0 + datetime.timedelta(hours=1)
        second = await store.acknowledge_alert(alert.id)
        assert first.acknowledged_at == T0
        assert second.acknowledged_at == T0

    async def test_foreign_actor_rejected(self) -> None:
        store = InMemoryEntityStore(clock=Clock())
        alert = await store.create_alert(_alert())
        with pytest.raises(UnauthorizedUpdateError):
            await store.acknowledge_alert(alert.id, actor_id="someone-else")
        stored = await store.get_alert(alert.id)
        assert stored is not None and stored.acknowledged_at is None

    async def test_unknown_alert(self) -> None:
        with pytest.raises(AlertNotFoundError):
            await InMemoryEntityStore().acknowledge_alert("nope")

    async def test_bulk_is_owner_scoped(self) -> None:
        store = InMemoryEntityStore(clock=Clock())
        mine = await store.create_alert(_alert())
        theirs = await store.create_alert(_alert(owner_id="u-2"))
        count = await store.bulk_acknowledge([mine.id, theirs.id, "missing"], "u-1")
        assert count == 1
        assert (await store.get_alert(mine.id)).acknowledged_at == T0  # type: ignore[union-attr]
        assert (await store.get_alert(theirs.id)).acknowledged_at is None  # type: ignore[union-attr]


class TestRecipientsAndStats:
    async def test_get_recipient(self) -> None:
        store = InMemoryEntityStore(recipients=[Recipient(user_id="u-1", email="a@b.c")])
        assert (await store.get_recipient("u-1")).email == "a@b.c"  # type: ignore[union-attr]
        assert await store.get_recipient("u-2") is None

    def test_alert_stats(self) -> None:
        stats = alert_stats([
            _alert(),
            _alert(category=AlertCategory.ISSUE, severity=Severity.HIGH, acknowledged_at=T0),
            _alert(severity=Severity.HIGH),
        ])
        assert stats.total == 3
        assert stats.unread == 2
        assert stats.by_category == {"delay": 2, "issue": 1}
        assert stats.by_severity == {"Low": 1, "High": 2}
