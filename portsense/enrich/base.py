"""Text generation capability used to phrase alert messages."""

from __future__ import annotations

import abc

from pydantic import BaseModel, Field

from portsense.core.types import AlertCategory, TrackedEntity
from portsense.enrich.exceptions import EnrichmentError


class AlertContext(BaseModel):
    """Container facts handed to the text generator."""

    container_id: str
    status: str
    current_location: str | None = None
    delay_hours: int = 0
    carrier: str | None = None
    issues: list[str] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: TrackedEntity) -> AlertContext:
        return cls(
            container_id=entity.reference,
            status=entity.status,
            current_location=entity.current_location or None,
            delay_hours=entity.delay_hours,
            carrier=entity.carrier,
            issues=list(entity.issues),
        )


class TextGenerator(abc.ABC):
    """Produces a short human-readable alert message.

    Callers treat every exception as "use the fallback text" and never retry.
    """

    @abc.abstractmethod
    async def generate_alert_message(
        self, context: AlertContext, category: AlertCategory
    ) -> str:
        """Return one actionable sentence describing the alert."""

    async def close(self) -> None:
        """Release resources (HTTP clients, etc.)."""


class FallbackTextGenerator(TextGenerator):
    """Stand-in used when no text generation service is configured."""

    async def generate_alert_message(
        self, context: AlertContext, category: AlertCategory
    ) -> str:
        raise EnrichmentError("text generation is not configured")
