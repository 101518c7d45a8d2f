"""Core module — config, types, logging."""

from portsense.core.config import Settings, get_settings, load_settings, reset_settings
from portsense.core.logging import setup_logging
from portsense.core.types import (
    Alert,
    AlertCategory,
    AlertStats,
    AlertTrigger,
    BulkContainerEdit,
    ChangeCategory,
    ChangeEvent,
    Channel,
    ChannelResults,
    ContainerEdit,
    Coordinates,
    EntityUpdate,
    HistoryRecord,
    NotificationPreferences,
    ProviderLocation,
    ProviderSnapshot,
    Recipient,
    RiskLevel,
    Severity,
    TrackedEntity,
    utcnow,
)

__all__ = [
    "Alert",
    "AlertCategory",
    "AlertStats",
    "AlertTrigger",
    "BulkContainerEdit",
    "ChangeCategory",
    "ChangeEvent",
    "Channel",
    "ChannelResults",
    "ContainerEdit",
    "Coordinates",
    "EntityUpdate",
    "HistoryRecord",
    "NotificationPreferences",
    "ProviderLocation",
    "ProviderSnapshot",
    "Recipient",
    "RiskLevel",
    "Settings",
    "Severity",
    "TrackedEntity",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
    "utcnow",
]
