"""Declarative alert rules and their deterministic alert text."""

from __future__ import annotations

import datetime
from collections.abc import Callable
from dataclasses import dataclass

from portsense.core.types import AlertCategory, RiskLevel, Severity, TrackedEntity

# (entity, evaluation time) -> matched
Predicate = Callable[[TrackedEntity, datetime.datetime], bool]

_CONCERNING_STATUSES = ("lost", "damaged", "seized", "missing")

_STUCK_AFTER = datetime.timedelta(days=3)


@dataclass(frozen=True)
class AlertRule:
    """A fixed predicate over one container plus how to report a match."""

    id: str
    name: str
    description: str
    predicate: Predicate
    severity: Severity
    category: AlertCategory
    cooldown: datetime.timedelta
    enabled: bool = True

    @property
    def cooldown_hours(self) -> float:
        return self.cooldown.total_seconds() / 3600


def _hours(n: int) -> datetime.timedelta:
    return datetime.timedelta(hours=n)


def _delay_between(lo: int, hi: int | None) -> Predicate:
    def predicate(entity: TrackedEntity, now: datetime.datetime) -> bool:
        if entity.delay_hours < lo:
            return False
        return hi is None or entity.delay_hours < hi

    return predicate


def _has_issues(entity: TrackedEntity, now: datetime.datetime) -> bool:
    return len(entity.issues) > 0


def _is_high_risk(entity: TrackedEntity, now: datetime.datetime) -> bool:
    return entity.risk_level == RiskLevel.HIGH


def _is_stuck(entity: TrackedEntity, now: datetime.datetime) -> bool:
    return (
        now - entity.last_updated > _STUCK_AFTER
        and entity.status.lower() != "delivered"
    )


def _has_concerning_status(entity: TrackedEntity, now: datetime.datetime) -> bool:
    status = entity.status.lower()
    return any(word in status for word in _CONCERNING_STATUSES)


DEFAULT_RULES: tuple[AlertRule, ...] = (
    # Delay bands are half-open and non-overlapping.
    AlertRule(
        id="critical-delay-72h",
        name="Critical Delay (72+ hours)",
        description="Container is delayed by 72 hours or more",
        predicate=_delay_between(72, None),
        severity=Severity.HIGH,
        category=AlertCategory.DELAY,
        cooldown=_hours(24),
    ),
    AlertRule(
        id="major-delay-48h",
        name="Major Delay (48+ hours)",
        description="Container is delayed by 48 to 72 hours",
        predicate=_delay_between(48, 72),
        severity=Severity.HIGH,
        category=AlertCategory.DELAY,
        cooldown=_hours(12),
    ),
    AlertRule(
        id="moderate-delay-24h",
        name="Moderate Delay (24+ hours)",
        description="Container is delayed by 24 to 48 hours",
        predicate=_delay_between(24, 48),
        severity=Severity.MEDIUM,
        category=AlertCategory.DELAY,
        cooldown=_hours(8),
    ),
    AlertRule(
        id="minor-delay-12h",
        name="Minor Delay (12+ hours)",
        description="Container is delayed by 12 to 24 hours",
        predicate=_delay_between(12, 24),
        severity=Severity.LOW,
        category=AlertCategory.DELAY,
        cooldown=_hours(6),
    ),
    AlertRule(
        id="container-issues",
        name="Container Issues Detected",
        description="Container has reported issues or problems",
        predicate=_has_issues,
        severity=Severity.MEDIUM,
        category=AlertCategory.ISSUE,
        cooldown=_hours(4),
    ),
    AlertRule(
        id="high-risk",
        name="High Risk Container",
        description="Container has been marked as high risk",
        predicate=_is_high_risk,
        severity=Severity.HIGH,
        category=AlertCategory.ISSUE,
        cooldown=_hours(6),
    ),
    AlertRule(
        id="stuck-at-location",
        name="Container Stuck at Location",
        description="Container has not been updated for more than 3 days",
        predicate=_is_stuck,
        severity=Severity.MEDIUM,
        category=AlertCategory.LOCATION,
        cooldown=_hours(12),
    ),
    AlertRule(
        id="unexpected-status",
        name="Unexpected Status",
        description="Container status reports loss, damage, seizure, or disappearance",
        predicate=_has_concerning_status,
        severity=Severity.HIGH,
        category=AlertCategory.ISSUE,
        cooldown=_hours(1),
    ),
)


# ── Alert text ──────────────────────────────────────────────────


def alert_title(rule: AlertRule, entity: TrackedEntity) -> str:
    """Deterministic alert title for a rule match."""
    ref = entity.reference
    if rule.category == AlertCategory.DELAY:
        return f"Container {ref} Delayed ({entity.delay_hours}h)"
    if rule.category == AlertCategory.ISSUE:
        return f"Container {ref} Issue Detected"
    if rule.category == AlertCategory.LOCATION:
        return f"Container {ref} Location Concern"
    return f"Container {ref} Alert: {rule.name}"


def alert_message(rule: AlertRule, entity: TrackedEntity) -> str:
    """Deterministic alert body; also the fallback when enrichment fails."""
    ref = entity.reference
    location = entity.current_location or "Unknown location"

    if rule.category == AlertCategory.DELAY:
        return (
            f"Container {ref} is currently delayed by {entity.delay_hours} hours. "
            f"Current location: {location}. Status: {entity.status}."
        )
    if rule.id == "container-issues":
        issues = ", ".join(entity.issues) or "Unknown issues"
        return f"Container {ref} has reported issues: {issues}. Current location: {location}."
    if rule.id == "high-risk":
        return (
            f"Container {ref} has been classified as high risk. "
            f"Immediate attention may be required. Current location: {location}."
        )
    if rule.id == "stuck-at-location":
        last = entity.last_updated.date().isoformat()
        return f"Container {ref} appears to be stuck at {location}. Last update: {last}."
    if rule.id == "unexpected-status":
        return (
            f'Container {ref} status has changed to "{entity.status}" which may '
            f"require attention. Current location: {location}."
        )
    return f"Container {ref} triggered alert rule: {rule.name}. Current location: {location}."
