"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class MonitoringConfig(BaseModel):
    """Monitoring cycle pacing and change-detection thresholds."""

    batch_size: int = 5
    requests_per_sec: float = 2.5
    burst: int = 5
    provider_timeout_secs: float = 15.0
    interval_secs: float = 900.0
    significant_delay_delta_hours: int = 6
    medium_risk_delay_hours: int = 12
    high_risk_delay_hours: int = 48
    significant_delay_issue_hours: int = 24
    history_retention_days: int = 30
    sweep_batch_size: int = 20


class TrackingConfig(BaseModel):
    """Tracking provider selection."""

    provider: str = "mock"
    base_url: str = ""
    api_key: SecretStr = SecretStr("")
    mock_latency_secs: float = 0.0


class EnrichmentConfig(BaseModel):
    """Text generation service used to phrase alert messages."""

    enabled: bool = False
    base_url: str = "https://api.openai.com/v1"
    api_key: SecretStr = SecretStr("")
    model: str = "gpt-4o-mini"
    max_tokens: int = 100
    timeout_secs: float = 10.0


class EmailConfig(BaseModel):
    """Resend email delivery."""

    enabled: bool = True
    api_key: SecretStr = SecretStr("")
    sender: str = "PortSense <alerts@portsense.com>"
    base_url: str = "https://api.resend.com"


class SmsConfig(BaseModel):
    """Twilio SMS delivery."""

    enabled: bool = True
    account_sid: str = ""
    auth_token: SecretStr = SecretStr("")
    from_number: str = ""
    default_to_number: str = ""
    base_url: str = "https://api.twilio.com/2010-04-01"


class ChatConfig(BaseModel):
    """Chat webhook delivery (Slack-compatible incoming webhooks)."""

    enabled: bool = True


class NotificationsConfig(BaseModel):
    """Container for all notification channel configurations."""

    email: EmailConfig = EmailConfig()
    sms: SmsConfig = SmsConfig()
    chat: ChatConfig = ChatConfig()
    app_url: str = "http://localhost:3000"
    channel_timeout_secs: float = 10.0


class RealtimeConfig(BaseModel):
    """Live change stream configuration."""

    heartbeat_secs: float = 30.0
    queue_size: int = 256


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    monitoring_secret: SecretStr = SecretStr("")


class RulesConfig(BaseModel):
    """Alert rules disabled at startup."""

    disabled: list[str] = []


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    monitoring: MonitoringConfig = MonitoringConfig()
    tracking: TrackingConfig = TrackingConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    realtime: RealtimeConfig = RealtimeConfig()
    server: ServerConfig = ServerConfig()
    rules: RulesConfig = RulesConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
