"""Server-sent event stream of container changes for one viewer."""

from __future__ import annotations

import asyncio

import structlog
from aiohttp import web

from portsense.realtime.hub import (
    BroadcastHub,
    connection_message,
    heartbeat_message,
    sse_frame,
)

logger = structlog.get_logger(__name__)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def stream_events(
    request: web.Request,
    hub: BroadcastHub,
    viewer_id: str,
    heartbeat_secs: float = 30.0,
) -> web.StreamResponse:
    """Hold the connection open and forward the viewer's changes.

    The subscription is removed however the stream ends: client disconnect,
    write failure, hub drop, or cancellation.
    """
    response = web.StreamResponse(status=200, headers=SSE_HEADERS)
    await response.prepare(request)

    sub = await hub.subscribe(viewer_id)
    try:
        await response.write(sse_frame(connection_message(viewer_id)))
        while not sub.closed:
            try:
                message = await asyncio.wait_for(sub.queue.get(), timeout=heartbeat_secs)
            except TimeoutError:
                message = heartbeat_message()
            await response.write(sse_frame(message))
    except ConnectionError:
        logger.info("sse_client_disconnected", handle=sub.handle, viewer_id=viewer_id)
    finally:
        await hub.unsubscribe(sub.handle)
    return response
