"""Convenience factory for wiring the notification stack."""

from __future__ import annotations

from portsense.core.config import NotificationsConfig
from portsense.notify.channels import (
    ChatWebhookChannel,
    EmailChannel,
    NotificationChannel,
    SmsChannel,
)
from portsense.notify.dispatcher import NotificationDispatcher
from portsense.store.base import EntityStore


def create_dispatcher(
    config: NotificationsConfig,
    store: EntityStore,
) -> NotificationDispatcher:
    """Build a dispatcher with every channel enabled in config."""
    channels: list[NotificationChannel] = []

    if config.email.enabled:
        channels.append(EmailChannel(config.email, app_url=config.app_url))

    if config.sms.enabled:
        channels.append(SmsChannel(config.sms, app_url=config.app_url))

    if config.chat.enabled:
        channels.append(ChatWebhookChannel(app_url=config.app_url))

    return NotificationDispatcher(
        store=store,
        channels=channels,
        channel_timeout_secs=config.channel_timeout_secs,
    )
