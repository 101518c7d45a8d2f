"""RuleEngine — evaluates the fixed rule table against one container."""

from __future__ import annotations

import datetime
import threading
from collections.abc import Callable, Iterable

import structlog
from pydantic import BaseModel

from portsense.alerts.rules import DEFAULT_RULES, AlertRule, alert_message, alert_title
from portsense.core.types import AlertCategory, AlertTrigger, Severity, TrackedEntity, utcnow

logger = structlog.stdlib.get_logger()


class RuleView(BaseModel):
    """Serializable description of a rule and its current enabled state."""

    id: str
    name: str
    description: str
    severity: Severity
    category: AlertCategory
    cooldown_hours: float
    enabled: bool


class RuleEngine:
    """Immutable rule table plus a runtime enabled/disabled overlay.

    Predicates are code and cannot change after construction; only the
    overlay is mutable. The overlay is a frozenset swapped under a lock, so
    ``evaluate()`` always sees one consistent snapshot.

    Usage::

        engine = RuleEngine(disabled=["minor-delay-12h"])
        triggers = engine.evaluate(entity)
        engine.set_rule_enabled("minor-delay-12h", True)
    """

    def __init__(
        self,
        rules: Iterable[AlertRule] = DEFAULT_RULES,
        disabled: Iterable[str] = (),
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._rules: tuple[AlertRule, ...] = tuple(rules)
        self._by_id: dict[str, AlertRule] = {r.id: r for r in self._rules}
        if len(self._by_id) != len(self._rules):
            raise ValueError("duplicate rule id in rule table")
        self._clock = clock
        self._write_lock = threading.Lock()
        initially_off = {r.id for r in self._rules if not r.enabled}
        initially_off.update(rid for rid in disabled if rid in self._by_id)
        self._disabled: frozenset[str] = frozenset(initially_off)

    @property
    def rules(self) -> tuple[AlertRule, ...]:
        return self._rules

    def get_rule(self, rule_id: str) -> AlertRule | None:
        return self._by_id.get(rule_id)

    def is_enabled(self, rule_id: str) -> bool:
        return rule_id in self._by_id and rule_id not in self._disabled

    def list_rules(self) -> list[RuleView]:
        """Full rule table in evaluation order, with enabled state."""
        disabled = self._disabled
        return [
            RuleView(
                id=r.id,
                name=r.name,
                description=r.description,
                severity=r.severity,
                category=r.category,
                cooldown_hours=r.cooldown_hours,
                enabled=r.id not in disabled,
            )
            for r in self._rules
        ]

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        """Enable or disable a rule. Returns False for an unknown id."""
        if rule_id not in self._by_id:
            return False
        with self._write_lock:
            if enabled:
                self._disabled = self._disabled - {rule_id}
            else:
                self._disabled = self._disabled | {rule_id}
        logger.info("alert_rule_toggled", rule_id=rule_id, enabled=enabled)
        return True

    def evaluate(self, entity: TrackedEntity) -> list[AlertTrigger]:
        """Evaluate every enabled rule in table order.

        A predicate that raises is logged and treated as not matching.
        """
        now = self._clock()
        disabled = self._disabled
        triggers: list[AlertTrigger] = []

        for rule in self._rules:
            if rule.id in disabled:
                continue
            try:
                matched = rule.predicate(entity, now)
            except Exception:
                logger.exception(
                    "alert_rule_evaluation_error",
                    rule_id=rule.id,
                    entity_id=entity.id,
                )
                continue
            if not matched:
                continue

            triggers.append(AlertTrigger(
                entity_id=entity.id,
                rule_id=rule.id,
                severity=rule.severity,
                category=rule.category,
                title=alert_title(rule, entity),
                message=alert_message(rule, entity),
                metadata={
                    "rule_name": rule.name,
                    "rule_description": rule.description,
                    "cooldown_hours": rule.cooldown_hours,
                    "evaluated_at": now.isoformat(),
                },
            ))

        return triggers
