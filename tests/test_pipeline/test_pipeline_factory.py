"""Tests for create_pipeline — wiring from settings and lifecycle."""

from __future__ import annotations

import datetime

from portsense.core.config import (
    ChatConfig,
    EnrichmentConfig,
    MonitoringConfig,
    NotificationsConfig,
    RulesConfig,
    Settings,
    SmsConfig,
)
from portsense.core.types import Channel, Recipient, TrackedEntity, utcnow
from portsense.enrich.base import FallbackTextGenerator
from portsense.factory import create_pipeline
from portsense.store.memory import InMemoryEntityStore
from portsense.tracking.mock import MockTrackingProvider


# ── Helpers ─────────────────────────────────────────────────────


def _settings(**kw: object) -> Settings:
    return Settings(**kw)  # type: ignore[arg-type]


def _store() -> InMemoryEntityStore:
    now = utcnow()
    return InMemoryEntityStore(
        entities=[
            TrackedEntity(
                id="c-1",
                container_id="MSCU-DELAY-7",
                owner_id="u-1",
                status="In Transit",
                original_eta=now,
                eta=now,
            ),
        ],
        recipients=[Recipient(user_id="u-1", email="ops@example.com")],
    )


# ── Wiring ──────────────────────────────────────────────────────


class TestPipelineWiring:
    def test_defaults(self) -> None:
        pipeline = create_pipeline(_settings())
        assert isinstance(pipeline.provider, MockTrackingProvider)
        assert isinstance(pipeline.text_generator, FallbackTextGenerator)
        assert set(pipeline.dispatcher.channels) == {Channel.EMAIL, Channel.SMS, Channel.CHAT}
        assert pipeline.service.cycle is pipeline.cycle

    def test_channels_follow_config(self) -> None:
        notifications = NotificationsConfig(
            sms=SmsConfig(enabled=False),
            chat=ChatConfig(enabled=False),
        )
        pipeline = create_pipeline(_settings(notifications=notifications))
        assert set(pipeline.dispatcher.channels) == {Channel.EMAIL}

    def test_disabled_rules_applied(self) -> None:
        pipeline = create_pipeline(_settings(rules=RulesConfig(disabled=["high-risk"])))
        assert pipeline.engine.is_enabled("high-risk") is False
        assert pipeline.engine.is_enabled("container-issues") is True

    def test_enrichment_without_key_falls_back(self) -> None:
        pipeline = create_pipeline(_settings(enrichment=EnrichmentConfig(enabled=True)))
        assert isinstance(pipeline.text_generator, FallbackTextGenerator)

    def test_injected_store_and_provider(self) -> None:
        store = _store()
        provider = MockTrackingProvider()
        pipeline = create_pipeline(_settings(), store=store, provider=provider)
        assert pipeline.store is store
        assert pipeline.provider is provider


# ── Flow ────────────────────────────────────────────────────────


class TestPipelineFlow:
    async def test_cycle_reaches_alerts_and_listeners(self) -> None:
        store = _store()
        provider = MockTrackingProvider()
        pipeline = create_pipeline(_settings(), store=store, provider=provider)
        await pipeline.start(schedule=False)
        sub = await pipeline.hub.subscribe("u-1")

        report = await pipeline.service.run_monitoring_cycle()

        assert report.updated == 1
        assert provider.calls == ["MSCU-DELAY-7"]
        rule_ids = {a.rule_id for a in store.alerts}
        assert "critical-delay-72h" in rule_ids
        # No email key configured, so delivery is recorded as failed.
        assert all(a.email_sent is False for a in store.alerts)
        message = sub.queue.get_nowait()
        assert message["type"] == "change"
        assert message["data"]["container"]["id"] == "c-1"

        await pipeline.close()
        assert pipeline.hub.listener_count == 0

    async def test_start_and_close_with_scheduler(self) -> None:
        settings = _settings(monitoring=MonitoringConfig(interval_secs=3600))
        pipeline = create_pipeline(settings, store=_store())
        await pipeline.start()
        await pipeline.close()
        assert pipeline.cycle.running is False

    async def test_history_recorded(self) -> None:
        store = _store()
        pipeline = create_pipeline(_settings(), store=store, provider=MockTrackingProvider())
        await pipeline.service.run_monitoring_cycle()
        history = await store.list_history("c-1")
        assert len(history) == 1
        assert history[0].status == "Delayed"
        assert history[0].recorded_at <= utcnow() + datetime.timedelta(seconds=1)
