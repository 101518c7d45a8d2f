"""Tests for AlertService — rule path from updated container to persisted alert."""

from __future__ import annotations

import asyncio
import datetime
from unittest.mock import AsyncMock

from portsense.alerts.engine import RuleEngine
from portsense.alerts.service import AlertService
from portsense.core.types import (
    Alert,
    AlertCategory,
    ChangeCategory,
    ChangeEvent,
    RiskLevel,
    Severity,
    TrackedEntity,
)
from portsense.enrich.base import AlertContext, TextGenerator
from portsense.enrich.exceptions import EnrichmentError
from portsense.store.memory import InMemoryEntityStore

NOW = datetime.datetime(2026, 10, 1, 12, 0, tzinfo=datetime.UTC)


# ── Helpers ─────────────────────────────────────────────────────


class Clock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self) -> datetime.datetime:
        return self.now


class StaticGenerator(TextGenerator):
    def __init__(self, text: str = "Generated text.") -> None:
        self.text = text
        self.calls: list[tuple[AlertContext, AlertCategory]] = []

    async def generate_alert_message(self, context: AlertContext, category: AlertCategory) -> str:
        self.calls.append((context, category))
        return self.text


class FailingGenerator(TextGenerator):
    async def generate_alert_message(self, context: AlertContext, category: AlertCategory) -> str:
        raise EnrichmentError("down")


class SlowGenerator(TextGenerator):
    async def generate_alert_message(self, context: AlertContext, category: AlertCategory) -> str:
        await asyncio.sleep(10)
        return "too late"


def _entity(**kw: object) -> TrackedEntity:
    defaults: dict[str, object] = {
        "id": "c-1",
        "container_id": "MSCU1",
        "owner_id": "u-1",
        "status": "Delayed",
        "current_location": "Port of Singapore",
        "delay_hours": 30,
        "last_updated": NOW,
    }
    defaults.update(kw)
    return TrackedEntity(**defaults)  # type: ignore[arg-type]


def _service(
    store: InMemoryEntityStore | None = None,
    generator: TextGenerator | None = None,
    clock: Clock | None = None,
    timeout: float = 10.0,
) -> tuple[AlertService, InMemoryEntityStore, Clock]:
    clock = clock or Clock()
    store = store or InMemoryEntityStore(clock=clock)
    service = AlertService(
        store,
        RuleEngine(clock=clock),
        text_generator=generator,
        enrichment_timeout_secs=timeout,
        clock=clock,
    )
    return service, store, clock


# ── check_entity ────────────────────────────────────────────────


class TestCheckEntity:
    async def test_creates_alert_per_trigger(self) -> None:
        service, store, _ = _service()
        created = await service.check_entity(_entity(risk_level=RiskLevel.HIGH))
        assert [a.rule_id for a in created] == ["moderate-delay-24h", "high-risk"]
        assert len(store.alerts) == 2
        alert = created[0]
        assert alert.owner_id == "u-1"
        assert alert.severity == Severity.MEDIUM
        assert alert.title == "Container MSCU1 Delayed (30h)"
        assert alert.created_at == NOW
        assert (alert.email_sent, alert.sms_sent, alert.chat_sent) == (False, False, False)

    async def test_no_triggers_no_alerts(self) -> None:
        service, store, _ = _service()
        assert await service.check_entity(_entity(delay_hours=0, status="In Transit")) == []
        assert store.alerts == []

    async def test_cooldown_suppresses_repeat(self) -> None:
        service, store, clock = _service()
        await service.check_entity(_entity())
        clock.now = NOW + datetime.timedelta(hours=7)
        assert await service.check_entity(_entity()) == []
        clock.now = NOW + datetime.timedelta(hours=8, minutes=1)
        again = await service.check_entity(_entity())
        assert [a.rule_id for a in again] == ["moderate-delay-24h"]
        assert len(store.alerts) == 2

    async def test_cooldown_is_per_rule(self) -> None:
        service, _, clock = _service()
        await service.check_entity(_entity(delay_hours=14))
        clock.now = NOW + datetime.timedelta(hours=1)
        created = await service.check_entity(_entity(delay_hours=30))
        assert [a.rule_id for a in created] == ["moderate-delay-24h"]

    async def test_persist_failure_isolated(self) -> None:
        service, store, _ = _service()
        original = store.create_alert
        calls = 0

        async def flaky(alert: Alert) -> Alert:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("write failed")
            return await original(alert)

        store.create_alert = flaky  # type: ignore[method-assign]
        created = await service.check_entity(_entity(risk_level=RiskLevel.HIGH))
        assert [a.rule_id for a in created] == ["high-risk"]

    async def test_on_change_event(self) -> None:
        service, store, _ = _service()
        entity = _entity()
        await service.on_change_event(ChangeEvent(
            entity=entity,
            previous_status="In Transit",
            new_status="Delayed",
            change_category=ChangeCategory.DELAY,
        ))
        assert len(store.alerts) == 1


# ── Enrichment ──────────────────────────────────────────────────


class TestEnrichment:
    async def test_generated_text_used(self) -> None:
        generator = StaticGenerator("Container MSCU1 is running 30h late.")
        service, _, _ = _service(generator=generator)
        created = await service.check_entity(_entity())
        assert created[0].message == "Container MSCU1 is running 30h late."
        assert created[0].ai_generated is True
        context, category = generator.calls[0]
        assert context.container_id == "MSCU1"
        assert category == AlertCategory.DELAY

    async def test_failure_falls_back(self) -> None:
        service, _, _ = _service(generator=FailingGenerator())
        created = await service.check_entity(_entity())
        assert created[0].ai_generated is False
        assert "delayed by 30 hours" in created[0].message

    async def test_timeout_falls_back(self) -> None:
        service, _, _ = _service(generator=SlowGenerator(), timeout=0.01)
        created = await service.check_entity(_entity())
        assert created[0].ai_generated is False

    async def test_no_generator_uses_rule_text(self) -> None:
        service, _, _ = _service()
        created = await service.check_entity(_entity())
        assert created[0].ai_generated is False


# ── Callbacks ───────────────────────────────────────────────────


class TestCallbacks:
    async def test_on_alert_receives_alert_and_entity(self) -> None:
        service, _, _ = _service()
        cb = AsyncMock()
        service.on_alert(cb)
        entity = _entity()
        created = await service.check_entity(entity)
        cb.assert_awaited_once_with(created[0], entity)

    async def test_sync_callback(self) -> None:
        service, _, _ = _service()
        seen: list[str] = []
        service.on_alert(lambda alert, entity: seen.append(alert.rule_id or ""))
        await service.check_entity(_entity())
        assert seen == ["moderate-delay-24h"]

    async def test_callback_error_isolated(self) -> None:
        service, _, _ = _service()
        bad = AsyncMock(side_effect=RuntimeError("boom"))
        good = AsyncMock()
        service.on_alert(bad)
        service.on_alert(good)
        await service.check_entity(_entity())
        good.assert_awaited_once()


# ── User actions ────────────────────────────────────────────────


class TestUserActions:
    async def test_acknowledge_and_stats(self) -> None:
        service, _, _ = _service()
        created = await service.check_entity(_entity(risk_level=RiskLevel.HIGH))
        await service.acknowledge(created[0].id, "u-1")
        stats = await service.stats("u-1")
        assert stats.total == 2
        assert stats.unread == 1
        assert stats.by_category == {"delay": 1, "issue": 1}

    async def test_stats_window(self) -> None:
        service, _, clock = _service()
        await service.check_entity(_entity())
        clock.now = NOW + datetime.timedelta(days=31)
        assert (await service.stats("u-1")).total == 0

    async def test_bulk_acknowledge(self) -> None:
        service, _, _ = _service()
        created = await service.check_entity(_entity(risk_level=RiskLevel.HIGH))
        count = await service.bulk_acknowledge([a.id for a in created], "u-1")
        assert count == 2
        assert (await service.stats("u-1")).unread == 0

    def test_rule_admin_passthrough(self) -> None:
        service, _, _ = _service()
        assert service.set_rule_enabled("high-risk", False) is True
        views = {v.id: v.enabled for v in service.list_rules()}
        assert views["high-risk"] is False
