"""Alert delivery over email, SMS, and chat webhooks."""

from portsense.notify.channels import (
    ChatWebhookChannel,
    EmailChannel,
    NotificationChannel,
    SmsChannel,
)
from portsense.notify.dispatcher import NotificationDispatcher
from portsense.notify.factory import create_dispatcher
from portsense.notify.formatters import (
    entity_link,
    format_chat_blocks,
    format_email_html,
    format_email_subject,
    format_sms_text,
)

__all__ = [
    "ChatWebhookChannel",
    "EmailChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "SmsChannel",
    "create_dispatcher",
    "entity_link",
    "format_chat_blocks",
    "format_email_html",
    "format_email_subject",
    "format_sms_text",
]
