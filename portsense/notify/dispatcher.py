"""Notification dispatcher — isolated, concurrent delivery on every enabled channel."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog

from portsense.core.types import Alert, Channel, ChannelResults, Recipient, TrackedEntity
from portsense.notify.channels import NotificationChannel
from portsense.store.base import EntityStore

# Dedicated structured logger for delivery records.
decision_logger = structlog.get_logger("decision_log")

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Sends a persisted alert to its owner through every eligible channel.

    - Each channel attempt is bounded by ``channel_timeout_secs``.
    - A channel that raises, times out, or reports failure is recorded as
      False; the others are unaffected.
    - Results are written back onto the alert's sent flags.
    """

    def __init__(
        self,
        store: EntityStore,
        channels: Iterable[NotificationChannel] = (),
        channel_timeout_secs: float = 10.0,
    ) -> None:
        self._store = store
        self._channels: dict[Channel, NotificationChannel] = {
            ch.channel: ch for ch in channels
        }
        self._timeout = channel_timeout_secs

    @property
    def channels(self) -> dict[Channel, NotificationChannel]:
        return dict(self._channels)

    # ── Entry points ────────────────────────────────────────────

    async def dispatch(
        self,
        alert: Alert,
        entity: TrackedEntity | None = None,
        recipient: Recipient | None = None,
        skip: Iterable[Channel] = (),
    ) -> ChannelResults:
        """Deliver *alert* and persist the per-channel outcome.

        Channels in *skip* are not attempted and keep their current flag.
        Never raises for delivery problems.
        """
        entity = entity or await self._store.get(alert.entity_id)
        recipient = recipient or await self._store.get_recipient(alert.owner_id)
        if entity is None or recipient is None:
            logger.error(
                "dispatch_missing_context",
                alert_id=alert.id,
                has_entity=entity is not None,
                has_recipient=recipient is not None,
            )
            current = ChannelResults(
                email=alert.email_sent, sms=alert.sms_sent, chat=alert.chat_sent,
            )
            # Nothing can be delivered; keep the alert out of the retry sweep.
            await self._write_flags(alert, current, pending=False)
            return current

        skipped = set(skip)
        targets = [
            ch for c, ch in self._channels.items()
            if c not in skipped and ch.accepts(recipient)
        ]
        outcomes = await asyncio.gather(
            *(self._attempt(ch, alert, entity, recipient) for ch in targets)
        )
        attempted = {ch.channel: ok for ch, ok in zip(targets, outcomes)}

        def flag(channel: Channel, current: bool) -> bool:
            if channel in attempted:
                return attempted[channel]
            return current if channel in skipped else False

        results = ChannelResults(
            email=flag(Channel.EMAIL, alert.email_sent),
            sms=flag(Channel.SMS, alert.sms_sent),
            chat=flag(Channel.CHAT, alert.chat_sent),
        )
        # Ineligible channels stay False but are not failures.
        pending = not all(attempted.values())

        decision_logger.info(
            "notification_dispatched",
            alert_id=alert.id,
            entity_id=alert.entity_id,
            severity=alert.severity.value,
            attempted=sorted(c.value for c in attempted),
            email=results.email,
            sms=results.sms,
            chat=results.chat,
            pending=pending,
        )

        await self._write_flags(alert, results, pending)
        return results

    async def retry_unsent(self, limit: int = 20) -> int:
        """Re-dispatch alerts that still have a failed eligible channel.

        Least recently attempted alerts go first, so alerts that keep failing
        rotate to the back instead of starving newer ones. Channels that
        already succeeded are not re-sent. Returns the number of alerts
        processed.
        """
        alerts = await self._store.list_unsent_alerts(limit)
        for alert in alerts:
            already_sent = [
                c for c, sent in (
                    (Channel.EMAIL, alert.email_sent),
                    (Channel.SMS, alert.sms_sent),
                    (Channel.CHAT, alert.chat_sent),
                ) if sent
            ]
            try:
                await self.dispatch(alert, skip=already_sent)
            except Exception:
                logger.exception("retry_dispatch_error", alert_id=alert.id)
        if alerts:
            logger.info("unsent_alerts_retried", count=len(alerts))
        return len(alerts)

    # ── Internal ────────────────────────────────────────────────

    async def _write_flags(self, alert: Alert, results: ChannelResults, pending: bool) -> None:
        try:
            await self._store.set_alert_channel_flags(alert.id, results, pending=pending)
        except Exception:
            logger.exception("channel_flags_write_error", alert_id=alert.id)

    async def _attempt(
        self,
        channel: NotificationChannel,
        alert: Alert,
        entity: TrackedEntity,
        recipient: Recipient,
    ) -> bool:
        try:
            async with asyncio.timeout(self._timeout):
                return bool(await channel.send(alert, entity, recipient))
        except TimeoutError:
            logger.warning(
                "channel_send_timeout",
                channel=channel.channel.value,
                alert_id=alert.id,
                timeout_secs=self._timeout,
            )
            return False
        except Exception:
            logger.exception(
                "channel_dispatch_error",
                channel=channel.channel.value,
                alert_id=alert.id,
            )
            return False

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for ch in self._channels.values():
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=ch.channel.value)
