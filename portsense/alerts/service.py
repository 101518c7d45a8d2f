"""AlertService — rule evaluation, cooldown, enrichment, and persistence for one container."""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Awaitable, Callable, Iterable

import structlog

from portsense.alerts.cooldown import COOLDOWN_LOOKBACK, filter_with_cooldown
from portsense.alerts.engine import RuleEngine, RuleView
from portsense.core.types import (
    Alert,
    AlertStats,
    AlertTrigger,
    ChangeEvent,
    TrackedEntity,
    utcnow,
)
from portsense.enrich.base import AlertContext, FallbackTextGenerator, TextGenerator
from portsense.store.base import EntityStore
from portsense.store.memory import alert_stats

# Dedicated structured logger for trigger decisions.
decision_logger = structlog.get_logger("alert_decision")

logger = structlog.stdlib.get_logger()

AlertCallback = Callable[[Alert, TrackedEntity], Awaitable[None] | None]

STATS_WINDOW = datetime.timedelta(days=30)


class AlertService:
    """Turns an updated container into durable alerts.

    Usage::

        service = AlertService(store, RuleEngine(), text_generator)
        service.on_alert(dispatcher_callback)
        created = await service.check_entity(entity)
    """

    def __init__(
        self,
        store: EntityStore,
        engine: RuleEngine,
        text_generator: TextGenerator | None = None,
        enrichment_timeout_secs: float = 10.0,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._store = store
        self._engine = engine
        self._text_generator = text_generator or FallbackTextGenerator()
        self._enrichment_timeout = enrichment_timeout_secs
        self._clock = clock
        self._callbacks: list[AlertCallback] = []

    @property
    def engine(self) -> RuleEngine:
        return self._engine

    def on_alert(self, callback: AlertCallback) -> None:
        """Register a callback invoked for every newly persisted alert."""
        self._callbacks.append(callback)

    async def _emit(self, alert: Alert, entity: TrackedEntity) -> None:
        for cb in self._callbacks:
            try:
                result = cb(alert, entity)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("alert_callback_error", alert_id=alert.id)

    # ── Pipeline ────────────────────────────────────────────────

    async def on_change_event(self, event: ChangeEvent) -> None:
        """ChangeEvent consumer for the rule path."""
        await self.check_entity(event.entity)

    async def check_entity(self, entity: TrackedEntity) -> list[Alert]:
        """Evaluate rules, drop cooled-down triggers, persist and emit the rest."""
        triggers = self._engine.evaluate(entity)
        if not triggers:
            return []

        now = self._clock()
        recent = await self._store.list_alerts_since(entity.id, now - COOLDOWN_LOOKBACK)
        survivors = filter_with_cooldown(triggers, recent, now)

        surviving_ids = {t.rule_id for t in survivors}
        for trigger in triggers:
            if trigger.rule_id not in surviving_ids:
                decision_logger.info(
                    "alert_suppressed",
                    entity_id=entity.id,
                    rule_id=trigger.rule_id,
                    reason="cooldown",
                )

        created: list[Alert] = []
        for trigger in survivors:
            try:
                alert = await self.persist(trigger, entity)
            except Exception:
                logger.exception(
                    "alert_persist_error",
                    entity_id=entity.id,
                    rule_id=trigger.rule_id,
                )
                continue
            created.append(alert)

        for alert in created:
            await self._emit(alert, entity)
        return created

    async def persist(self, trigger: AlertTrigger, entity: TrackedEntity) -> Alert:
        """Write one trigger as an alert, enriching the message when possible."""
        message, ai_generated = await self._enrich(trigger, entity)
        alert = await self._store.create_alert(Alert(
            entity_id=trigger.entity_id,
            owner_id=entity.owner_id,
            rule_id=trigger.rule_id,
            category=trigger.category,
            severity=trigger.severity,
            title=trigger.title,
            message=message,
            ai_generated=ai_generated,
            created_at=self._clock(),
        ))
        decision_logger.info(
            "alert_created",
            alert_id=alert.id,
            entity_id=entity.id,
            rule_id=trigger.rule_id,
            severity=trigger.severity.value,
            category=trigger.category.value,
            ai_generated=ai_generated,
        )
        return alert

    async def _enrich(self, trigger: AlertTrigger, entity: TrackedEntity) -> tuple[str, bool]:
        # Best effort, single attempt: any failure keeps the rule's own text.
        try:
            async with asyncio.timeout(self._enrichment_timeout):
                text = await self._text_generator.generate_alert_message(
                    AlertContext.from_entity(entity), trigger.category,
                )
        except Exception as exc:
            logger.info(
                "alert_enrichment_fallback",
                entity_id=entity.id,
                rule_id=trigger.rule_id,
                error=repr(exc),
            )
            return trigger.message, False
        return text, True

    # ── User actions ────────────────────────────────────────────

    async def acknowledge(self, alert_id: str, actor_id: str) -> Alert:
        return await self._store.acknowledge_alert(alert_id, actor_id)

    async def bulk_acknowledge(self, alert_ids: Iterable[str], actor_id: str) -> int:
        return await self._store.bulk_acknowledge(alert_ids, actor_id)

    async def stats(self, user_id: str) -> AlertStats:
        alerts = await self._store.list_alerts_for_user(user_id, self._clock() - STATS_WINDOW)
        return alert_stats(alerts)

    # ── Rule administration ─────────────────────────────────────

    def list_rules(self) -> list[RuleView]:
        return self._engine.list_rules()

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        return self._engine.set_rule_enabled(rule_id, enabled)
