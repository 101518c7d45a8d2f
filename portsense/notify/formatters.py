"""Pure functions that render an alert for each delivery channel."""

from __future__ import annotations

from html import escape as html_escape
from typing import Any

from portsense.core.types import Alert, Severity, TrackedEntity

# Accent colours keyed by severity.
_SEVERITY_COLORS: dict[Severity, str] = {
    Severity.LOW: "#2563eb",     # blue
    Severity.MEDIUM: "#d97706",  # amber
    Severity.HIGH: "#dc2626",    # red
}

_SMS_LIMIT = 1600


def entity_link(app_url: str, entity: TrackedEntity) -> str:
    """Dashboard URL for one container."""
    return f"{app_url.rstrip('/')}/dashboard/containers/{entity.id}"


def _detail_rows(entity: TrackedEntity) -> list[tuple[str, str]]:
    rows = [
        ("Container", entity.reference),
        ("Status", entity.status or "Unknown"),
        ("Location", entity.current_location or "Unknown"),
        ("Carrier", entity.carrier or "N/A"),
    ]
    if entity.delay_hours > 0:
        rows.append(("Delay", f"{entity.delay_hours} hours"))
    return rows


# ── Email ───────────────────────────────────────────────────────


def format_email_subject(alert: Alert) -> str:
    return f"PortSense Alert: {alert.title}"


def format_email_html(alert: Alert, entity: TrackedEntity, app_url: str) -> str:
    """HTML body with the alert text, container details, and a dashboard link."""
    color = _SEVERITY_COLORS.get(alert.severity, "#374151")
    rows = "".join(
        f'<tr><td style="padding:6px 0;color:#6b7280;">{html_escape(k)}:</td>'
        f'<td style="padding:6px 0;font-weight:500;">{html_escape(v)}</td></tr>'
        for k, v in _detail_rows(entity)
    )
    link = html_escape(entity_link(app_url, entity), quote=True)
    return (
        '<div style="max-width:600px;margin:0 auto;font-family:Arial,sans-serif;">'
        f'<h1 style="color:{color};margin:0 0 16px;">PortSense Alert '
        f"[{html_escape(alert.severity.value)}]</h1>"
        f'<h2 style="color:#374151;">{html_escape(alert.title)}</h2>'
        f'<p style="background:#fef3c7;padding:12px;border-radius:6px;">'
        f"{html_escape(alert.message)}</p>"
        f'<table style="width:100%;border-collapse:collapse;">{rows}</table>'
        f'<p style="text-align:center;margin-top:20px;"><a href="{link}">'
        "View Container Details</a></p>"
        "</div>"
    )


# ── SMS ─────────────────────────────────────────────────────────


def format_sms_text(alert: Alert, entity: TrackedEntity, app_url: str) -> str:
    """Plain-text SMS body, truncated to the carrier limit."""
    text = (
        f"PortSense Alert: {alert.title}\n\n"
        f"{alert.message}\n\n"
        f"Container: {entity.reference}\n"
        f"Status: {entity.status or 'Unknown'}\n"
        f"Location: {entity.current_location or 'Unknown'}\n\n"
        f"View details: {entity_link(app_url, entity)}"
    )
    if len(text) > _SMS_LIMIT:
        text = text[: _SMS_LIMIT - 3] + "..."
    return text


# ── Chat webhook ────────────────────────────────────────────────


def format_chat_blocks(alert: Alert, entity: TrackedEntity, app_url: str) -> dict[str, Any]:
    """Slack-compatible block kit payload."""
    fields = [
        {"type": "mrkdwn", "text": f"*{k}:*\n{v}"}
        for k, v in _detail_rows(entity)
    ]
    return {
        "text": f"PortSense Alert: {alert.title}",
        "blocks": [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f"PortSense Alert [{alert.severity.value}]"},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*{alert.title}*\n{alert.message}"},
            },
            {"type": "section", "fields": fields},
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View Details"},
                        "url": entity_link(app_url, entity),
                    },
                ],
            },
        ],
    }
