"""Pure change-detection helpers used by the monitoring cycle."""

from __future__ import annotations

import datetime
import math

from portsense.core.config import MonitoringConfig
from portsense.core.types import (
    ChangeCategory,
    Coordinates,
    EntityUpdate,
    ProviderSnapshot,
    RiskLevel,
    TrackedEntity,
)

_DEFAULTS = MonitoringConfig()


def compute_delay_hours(
    original_eta: datetime.datetime | None,
    new_eta: datetime.datetime,
) -> int:
    """Whole hours the new ETA slipped past the original; 0 if unknown or early."""
    if original_eta is None:
        return 0
    hours = (new_eta - original_eta).total_seconds() / 3600
    return max(0, math.floor(hours))


def derive_risk(delay_hours: int, config: MonitoringConfig = _DEFAULTS) -> RiskLevel:
    if delay_hours > config.high_risk_delay_hours:
        return RiskLevel.HIGH
    if delay_hours > config.medium_risk_delay_hours:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def derive_issues(
    delay_hours: int,
    snapshot: ProviderSnapshot,
    config: MonitoringConfig = _DEFAULTS,
) -> list[str]:
    issues: list[str] = []
    if delay_hours > config.significant_delay_issue_hours:
        issues.append("Significant delay")
    if "congestion" in snapshot.location.name.lower():
        issues.append("Port congestion")
    return issues


def is_significant(
    entity: TrackedEntity,
    snapshot: ProviderSnapshot,
    delay_hours: int,
    config: MonitoringConfig = _DEFAULTS,
) -> bool:
    """Status changed, location changed, or delay moved by at least the threshold."""
    return (
        entity.status != snapshot.status
        or entity.current_location != snapshot.location.name
        or abs(entity.delay_hours - delay_hours) >= config.significant_delay_delta_hours
    )


def classify_change(entity: TrackedEntity, update: EntityUpdate) -> ChangeCategory:
    """Most specific aspect that changed: location, then delay, then risk, else status."""
    if update.current_location is not None and update.current_location != entity.current_location:
        return ChangeCategory.LOCATION
    if update.delay_hours is not None and update.delay_hours != entity.delay_hours:
        return ChangeCategory.DELAY
    if update.risk_level is not None and update.risk_level != entity.risk_level:
        return ChangeCategory.RISK
    return ChangeCategory.STATUS


def build_update(
    entity: TrackedEntity,
    snapshot: ProviderSnapshot,
    config: MonitoringConfig = _DEFAULTS,
) -> EntityUpdate | None:
    """The store update implied by *snapshot*, or None if the delta is insignificant."""
    delay = compute_delay_hours(entity.original_eta, snapshot.eta)
    if not is_significant(entity, snapshot, delay, config):
        return None
    return EntityUpdate(
        status=snapshot.status,
        current_location=snapshot.location.name,
        coordinates=Coordinates(lat=snapshot.location.lat, lon=snapshot.location.lon),
        eta=snapshot.eta,
        delay_hours=delay,
        risk_level=derive_risk(delay, config),
        issues=derive_issues(delay, snapshot, config),
    )
