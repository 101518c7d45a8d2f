"""Notification channels — email, SMS, and chat webhook delivery."""

from __future__ import annotations

import abc

import aiohttp
import structlog

from portsense.core.config import EmailConfig, SmsConfig
from portsense.core.types import Alert, Channel, Recipient, TrackedEntity
from portsense.notify.formatters import (
    format_chat_blocks,
    format_email_html,
    format_email_subject,
    format_sms_text,
)

logger = structlog.get_logger(__name__)


class NotificationChannel(abc.ABC):
    """Base class for alert delivery channels."""

    channel: Channel

    def __init__(self, app_url: str = "") -> None:
        self._app_url = app_url
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    @property
    def configured(self) -> bool:
        """Whether the channel has the credentials it needs."""
        return True

    @abc.abstractmethod
    def accepts(self, recipient: Recipient) -> bool:
        """Whether this recipient wants (and can receive) alerts here."""

    @abc.abstractmethod
    async def send(self, alert: Alert, entity: TrackedEntity, recipient: Recipient) -> bool:
        """Send an alert. Returns True on success."""

    async def close(self) -> None:
        """Release the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class EmailChannel(NotificationChannel):
    """Delivers alerts through the Resend email API."""

    channel = Channel.EMAIL

    def __init__(self, config: EmailConfig, app_url: str = "") -> None:
        super().__init__(app_url)
        self._config = config
        self._api_key = config.api_key.get_secret_value()

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def accepts(self, recipient: Recipient) -> bool:
        return recipient.preferences.email_enabled and bool(recipient.email)

    async def send(self, alert: Alert, entity: TrackedEntity, recipient: Recipient) -> bool:
        if not self.configured:
            logger.warning("email_not_configured", alert_id=alert.id)
            return False

        payload = {
            "from": self._config.sender,
            "to": [recipient.email],
            "subject": format_email_subject(alert),
            "html": format_email_html(alert, entity, self._app_url),
        }
        url = f"{self._config.base_url.rstrip('/')}/emails"
        headers = {"Authorization": f"Bearer {self._api_key}"}

        session = self._get_session()
        async with session.post(url, json=payload, headers=headers) as resp:
            if 200 <= resp.status < 300:
                return True
            body = await resp.text()
            logger.warning(
                "email_send_failed",
                alert_id=alert.id,
                status=resp.status,
                body=body[:200],
            )
            return False


class SmsChannel(NotificationChannel):
    """Delivers alerts via the Twilio Messages API."""

    channel = Channel.SMS

    def __init__(self, config: SmsConfig, app_url: str = "") -> None:
        super().__init__(app_url)
        self._config = config
        self._auth_token = config.auth_token.get_secret_value()

    @property
    def configured(self) -> bool:
        return bool(self._config.account_sid and self._auth_token and self._config.from_number)

    def destination(self, recipient: Recipient) -> str | None:
        """The user's number, or the deployment-wide default."""
        return recipient.preferences.phone_number or self._config.default_to_number or None

    def accepts(self, recipient: Recipient) -> bool:
        return recipient.preferences.sms_enabled and self.destination(recipient) is not None

    async def send(self, alert: Alert, entity: TrackedEntity, recipient: Recipient) -> bool:
        if not self.configured:
            logger.warning("sms_not_configured", alert_id=alert.id)
            return False
        to_number = self.destination(recipient)
        if to_number is None:
            return False

        url = (
            f"{self._config.base_url.rstrip('/')}/Accounts/"
            f"{self._config.account_sid}/Messages.json"
        )
        form = {
            "To": to_number,
            "From": self._config.from_number,
            "Body": format_sms_text(alert, entity, self._app_url),
        }
        auth = aiohttp.BasicAuth(self._config.account_sid, self._auth_token)

        session = self._get_session()
        async with session.post(url, data=form, auth=auth) as resp:
            if resp.status in (200, 201):
                return True
            body = await resp.text()
            logger.warning(
                "sms_send_failed",
                alert_id=alert.id,
                status=resp.status,
                body=body[:200],
            )
            return False


class ChatWebhookChannel(NotificationChannel):
    """Posts block-formatted alerts to the user's chat webhook URL."""

    channel = Channel.CHAT

    def accepts(self, recipient: Recipient) -> bool:
        return bool(recipient.preferences.chat_webhook_url)

    async def send(self, alert: Alert, entity: TrackedEntity, recipient: Recipient) -> bool:
        webhook_url = recipient.preferences.chat_webhook_url
        if not webhook_url:
            return False

        payload = format_chat_blocks(alert, entity, self._app_url)

        session = self._get_session()
        async with session.post(webhook_url, json=payload) as resp:
            if resp.status in (200, 204):
                return True
            body = await resp.text()
            logger.warning(
                "chat_send_failed",
                alert_id=alert.id,
                status=resp.status,
                body=body[:200],
            )
            return False
