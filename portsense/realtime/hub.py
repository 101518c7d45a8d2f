"""BroadcastHub — per-viewer fan-out of container changes to live connections."""

from __future__ import annotations

import asyncio
import datetime
import json
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog

from portsense.core.types import ChangeEvent, utcnow

logger = structlog.get_logger(__name__)

Message = dict[str, Any]


def connection_message(viewer_id: str, now: datetime.datetime | None = None) -> Message:
    return {
        "type": "connection",
        "message": "Connected to container updates",
        "timestamp": (now or utcnow()).isoformat(),
        "user_id": viewer_id,
    }


def change_message(event: ChangeEvent) -> Message:
    return {"type": "change", "data": event.to_payload()}


def heartbeat_message(now: datetime.datetime | None = None) -> Message:
    return {"type": "heartbeat", "timestamp": (now or utcnow()).isoformat()}


def sse_frame(message: Message) -> bytes:
    """Encode one message as a server-sent event."""
    return f"data: {json.dumps(message)}\n\n".encode()


@dataclass
class Subscription:
    """One live connection: a viewer and its FIFO message queue."""

    viewer_id: str
    queue: asyncio.Queue[Message]
    handle: str = field(default_factory=lambda: uuid.uuid4().hex)
    closed: bool = False


class BroadcastHub:
    """Registry of live subscriptions keyed by handle.

    - ``publish`` delivers a change only to subscriptions whose viewer owns
      the changed container, in publish order.
    - A subscription whose queue is full is closed and removed; the other
      listeners are unaffected.
    - ``unsubscribe`` is idempotent.

    Usage::

        hub = BroadcastHub(queue_size=256)
        sub = await hub.subscribe("user-1")
        ...
        await hub.unsubscribe(sub.handle)
    """

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def viewer_count(self, viewer_id: str) -> int:
        return sum(1 for s in self._subscriptions.values() if s.viewer_id == viewer_id)

    async def subscribe(self, viewer_id: str) -> Subscription:
        sub = Subscription(viewer_id=viewer_id, queue=asyncio.Queue(maxsize=self._queue_size))
        async with self._lock:
            self._subscriptions[sub.handle] = sub
        logger.info(
            "listener_subscribed",
            handle=sub.handle,
            viewer_id=viewer_id,
            listeners=self.listener_count,
        )
        return sub

    async def unsubscribe(self, handle: str) -> bool:
        """Remove a subscription. Returns False if it was already gone."""
        async with self._lock:
            sub = self._subscriptions.pop(handle, None)
        if sub is None:
            return False
        sub.closed = True
        logger.info(
            "listener_unsubscribed",
            handle=handle,
            viewer_id=sub.viewer_id,
            listeners=self.listener_count,
        )
        return True

    async def publish(self, event: ChangeEvent) -> int:
        """Queue *event* for every listener of its owner. Returns the delivery count."""
        message = change_message(event)
        delivered = 0
        async with self._lock:
            for handle, sub in list(self._subscriptions.items()):
                if sub.viewer_id != event.owner_id:
                    continue
                try:
                    sub.queue.put_nowait(message)
                except asyncio.QueueFull:
                    sub.closed = True
                    del self._subscriptions[handle]
                    logger.warning(
                        "listener_dropped",
                        handle=handle,
                        viewer_id=sub.viewer_id,
                        reason="queue_full",
                    )
                    continue
                delivered += 1
        return delivered

    async def on_change_event(self, event: ChangeEvent) -> None:
        """ChangeEvent consumer for the broadcast path."""
        await self.publish(event)

    async def close(self) -> None:
        async with self._lock:
            subs = list(self._subscriptions.values())
            self._subscriptions.clear()
        for sub in subs:
            sub.closed = True
