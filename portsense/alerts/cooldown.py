"""Cooldown filter — drops triggers already alerted within their rule's window."""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from portsense.core.types import Alert, AlertTrigger

# How far back the caller should load alerts for an entity. No rule has a
# cooldown longer than this.
COOLDOWN_LOOKBACK = datetime.timedelta(hours=24)

_DEFAULT_COOLDOWN_HOURS = 1.0


def _cooldown_for(trigger: AlertTrigger) -> datetime.timedelta:
    hours = trigger.metadata.get("cooldown_hours") or _DEFAULT_COOLDOWN_HOURS
    return datetime.timedelta(hours=float(hours))


def _entity_ref(title: str) -> str:
    # Titles all start "Container <ref> ..."
    parts = title.split(" ")
    return parts[1] if len(parts) > 1 else title


def _same_rule(alert: Alert, trigger: AlertTrigger) -> bool:
    if alert.rule_id is not None:
        return alert.rule_id == trigger.rule_id
    # Records written without a rule id: category plus container reference.
    return (
        alert.category == trigger.category
        and _entity_ref(trigger.title) in alert.title
    )


def filter_with_cooldown(
    triggers: Iterable[AlertTrigger],
    recent_alerts: Iterable[Alert],
    now: datetime.datetime,
) -> list[AlertTrigger]:
    """Return the triggers not covered by a recent alert from the same rule.

    Pure: no I/O, no mutation of the inputs.
    """
    recent = list(recent_alerts)
    survivors: list[AlertTrigger] = []
    for trigger in triggers:
        window_start = now - _cooldown_for(trigger)
        suppressed = any(
            alert.entity_id == trigger.entity_id
            and alert.created_at > window_start
            and _same_rule(alert, trigger)
            for alert in recent
        )
        if not suppressed:
            survivors.append(trigger)
    return survivors
