"""Live change broadcast to connected viewers."""

from portsense.realtime.hub import (
    BroadcastHub,
    Subscription,
    change_message,
    connection_message,
    heartbeat_message,
    sse_frame,
)
from portsense.realtime.sse import stream_events

__all__ = [
    "BroadcastHub",
    "Subscription",
    "change_message",
    "connection_message",
    "heartbeat_message",
    "sse_frame",
    "stream_events",
]
