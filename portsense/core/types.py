"""Domain types for container tracking, alerting, and live updates."""

from __future__ import annotations

import datetime
import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime.datetime:
    """Timezone-aware current UTC time."""
    return datetime.datetime.now(datetime.UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class RiskLevel(StrEnum):
    """Risk classification derived from delay."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Severity(StrEnum):
    """Alert severity."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class AlertCategory(StrEnum):
    """What kind of condition an alert describes."""

    DELAY = "delay"
    ISSUE = "issue"
    LOCATION = "location"
    CUSTOM = "custom"


class ChangeCategory(StrEnum):
    """Which aspect of a tracked container changed."""

    LOCATION = "location"
    STATUS = "status"
    DELAY = "delay"
    RISK = "risk"


class Channel(StrEnum):
    """Notification delivery mechanism."""

    EMAIL = "email"
    SMS = "sms"
    CHAT = "chat"


# ── Tracked containers ──────────────────────────────────────────


class Coordinates(BaseModel):
    """Latitude / longitude pair."""

    lat: float
    lon: float


class TrackedEntity(BaseModel):
    """Current state of a tracked container."""

    id: str
    container_id: str = ""
    owner_id: str
    status: str = ""
    current_location: str = ""
    coordinates: Coordinates | None = None
    eta: datetime.datetime | None = None
    original_eta: datetime.datetime | None = None
    delay_hours: int = Field(default=0, ge=0)
    risk_level: RiskLevel = RiskLevel.LOW
    issues: list[str] = Field(default_factory=list)
    carrier: str | None = None
    last_updated: datetime.datetime = Field(default_factory=utcnow)
    is_active: bool = True

    @property
    def reference(self) -> str:
        """Human-facing container reference."""
        return self.container_id or self.id


class EntityUpdate(BaseModel):
    """Partial set of fields written by a monitoring update."""

    status: str | None = None
    current_location: str | None = None
    coordinates: Coordinates | None = None
    eta: datetime.datetime | None = None
    delay_hours: int | None = Field(default=None, ge=0)
    risk_level: RiskLevel | None = None
    issues: list[str] | None = None

    def changes(self) -> dict[str, Any]:
        """Only the fields that were explicitly provided."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class ContainerEdit(BaseModel):
    """Fields a user may correct by hand on one of their containers."""

    model_config = ConfigDict(extra="forbid")

    status: str | None = None
    current_location: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    eta: datetime.datetime | None = None
    delay_hours: int | None = Field(default=None, ge=0)
    risk_level: RiskLevel | None = None

    @model_validator(mode="after")
    def _check(self) -> ContainerEdit:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        if self.eta is not None and self.eta.tzinfo is None:
            self.eta = self.eta.replace(tzinfo=datetime.UTC)
        return self

    def to_update(self) -> EntityUpdate:
        fields = self.model_dump(exclude_none=True, exclude={"id", "latitude", "longitude"})
        if self.latitude is not None and self.longitude is not None:
            fields["coordinates"] = Coordinates(lat=self.latitude, lon=self.longitude)
        return EntityUpdate(**fields)


class BulkContainerEdit(ContainerEdit):
    """One entry of a bulk edit, addressed by container id."""

    id: str


class HistoryRecord(BaseModel):
    """Immutable snapshot of a container at a point in time."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    status: str
    location: str
    delay_hours: int
    coordinates: Coordinates | None = None
    eta: datetime.datetime | None = None
    recorded_at: datetime.datetime = Field(default_factory=utcnow)


# ── Tracking provider ───────────────────────────────────────────


class ProviderLocation(BaseModel):
    """Position reported by the tracking provider."""

    lat: float
    lon: float
    name: str


class ProviderSnapshot(BaseModel):
    """Current position/status/ETA returned by the tracking provider."""

    status: str
    location: ProviderLocation
    eta: datetime.datetime
    last_port: str = ""
    next_port: str = ""
    vessel: str = ""


# ── Alerts ──────────────────────────────────────────────────────


class AlertTrigger(BaseModel):
    """Candidate alert produced by one matching rule, before cooldown filtering."""

    entity_id: str
    rule_id: str
    severity: Severity
    category: AlertCategory
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class Alert(BaseModel):
    """Durable alert record."""

    id: str = Field(default_factory=_new_id)
    entity_id: str
    owner_id: str
    rule_id: str | None = None
    category: AlertCategory
    severity: Severity
    title: str
    message: str
    ai_generated: bool = False
    email_sent: bool = False
    sms_sent: bool = False
    chat_sent: bool = False
    # Set until a dispatch leaves no eligible channel failed.
    delivery_pending: bool = True
    last_dispatch_at: datetime.datetime | None = None
    created_at: datetime.datetime = Field(default_factory=utcnow)
    acknowledged_at: datetime.datetime | None = None


class ChannelResults(BaseModel):
    """Per-channel delivery outcome for one alert."""

    email: bool = False
    sms: bool = False
    chat: bool = False

    def get(self, channel: Channel) -> bool:
        return bool(getattr(self, channel.value))


class AlertStats(BaseModel):
    """Alert counts for one user over a trailing window."""

    total: int = 0
    unread: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


# ── Recipients ──────────────────────────────────────────────────


class NotificationPreferences(BaseModel):
    """Which channels a user wants alerts on."""

    email_enabled: bool = True
    sms_enabled: bool = False
    phone_number: str | None = None
    chat_webhook_url: str | None = None


class Recipient(BaseModel):
    """Owning user of an alert with contact details."""

    user_id: str
    email: str | None = None
    preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)


# ── Change events ───────────────────────────────────────────────


class ChangeEvent(BaseModel):
    """A significant update applied by the monitoring cycle."""

    entity: TrackedEntity
    previous_status: str
    new_status: str
    change_category: ChangeCategory
    timestamp: datetime.datetime = Field(default_factory=utcnow)

    @property
    def owner_id(self) -> str:
        return self.entity.owner_id

    def to_payload(self) -> dict[str, Any]:
        """Public fields pushed to live viewers."""
        e = self.entity
        return {
            "container": {
                "id": e.id,
                "container_id": e.reference,
                "status": e.status,
                "current_location": e.current_location,
                "latitude": e.coordinates.lat if e.coordinates else None,
                "longitude": e.coordinates.lon if e.coordinates else None,
                "delay_hours": e.delay_hours,
                "risk_level": e.risk_level.value,
                "last_updated": e.last_updated.isoformat(),
                "eta": e.eta.isoformat() if e.eta else None,
            },
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "change_type": self.change_category.value,
            "timestamp": self.timestamp.isoformat(),
        }
