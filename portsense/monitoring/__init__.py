"""Monitoring cycle, change detection, and periodic scheduling."""

from portsense.monitoring.analysis import (
    build_update,
    classify_change,
    compute_delay_hours,
    derive_issues,
    derive_risk,
    is_significant,
)
from portsense.monitoring.cycle import CycleReport, EntityOutcome, MonitoringCycle
from portsense.monitoring.exceptions import CycleAlreadyRunningError, MonitoringError
from portsense.monitoring.scheduler import MonitoringScheduler
from portsense.monitoring.service import MonitoringService

__all__ = [
    "CycleAlreadyRunningError",
    "CycleReport",
    "EntityOutcome",
    "MonitoringCycle",
    "MonitoringError",
    "MonitoringScheduler",
    "MonitoringService",
    "build_update",
    "classify_change",
    "compute_delay_hours",
    "derive_issues",
    "derive_risk",
    "is_significant",
]
