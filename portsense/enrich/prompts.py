"""Prompt templates for alert message generation."""

from __future__ import annotations

from portsense.core.types import AlertCategory
from portsense.enrich.base import AlertContext

SYSTEM_PROMPT = (
    "You write concise, factual shipping alerts for logistics operators. "
    "Never invent facts that are not in the data."
)


def alert_message_prompt(context: AlertContext, category: AlertCategory) -> str:
    issues = ", ".join(context.issues) or "None"
    return (
        f"Generate an alert message for container {context.container_id}:\n"
        f"- Alert Type: {category.value}\n"
        f"- Status: {context.status}\n"
        f"- Location: {context.current_location or 'Unknown'}\n"
        f"- Delay: {context.delay_hours} hours\n"
        f"- Carrier: {context.carrier or 'N/A'}\n"
        f"- Issues: {issues}\n"
        "\n"
        "Create a clear, actionable alert message in 1 sentence."
    )
