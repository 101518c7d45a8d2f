"""Tests for BroadcastHub — owner filtering, ordering, drop-on-full, cleanup."""

from __future__ import annotations

import asyncio
import json

from portsense.core.types import ChangeCategory, ChangeEvent, TrackedEntity
from portsense.realtime.hub import (
    BroadcastHub,
    connection_message,
    heartbeat_message,
    sse_frame,
)


def _event(owner: str = "u-1", status: str = "Delayed", entity_id: str = "c-1") -> ChangeEvent:
    entity = TrackedEntity(id=entity_id, owner_id=owner, status=status)
    return ChangeEvent(
        entity=entity,
        previous_status="In Transit",
        new_status=status,
        change_category=ChangeCategory.STATUS,
    )


class TestSubscribe:
    async def test_subscribe_and_unsubscribe(self) -> None:
        hub = BroadcastHub()
        a = await hub.subscribe("u-1")
        b = await hub.subscribe("u-1")
        assert a.handle != b.handle
        assert hub.listener_count == 2
        assert hub.viewer_count("u-1") == 2

        assert await hub.unsubscribe(a.handle) is True
        assert a.closed is True
        assert hub.listener_count == 1

    async def test_unsubscribe_idempotent(self) -> None:
        hub = BroadcastHub()
        sub = await hub.subscribe("u-1")
        await hub.unsubscribe(sub.handle)
        assert await hub.unsubscribe(sub.handle) is False
        assert await hub.unsubscribe("never-existed") is False


class TestPublish:
    async def test_only_owner_receives(self) -> None:
        hub = BroadcastHub()
        mine = await hub.subscribe("u-1")
        theirs = await hub.subscribe("u-2")

        delivered = await hub.publish(_event(owner="u-1"))

        assert delivered == 1
        assert mine.queue.qsize() == 1
        assert theirs.queue.empty()
        message = mine.queue.get_nowait()
        assert message["type"] == "change"
        assert message["data"]["container"]["id"] == "c-1"

    async def test_every_connection_of_owner_receives(self) -> None:
        hub = BroadcastHub()
        tab1 = await hub.subscribe("u-1")
        tab2 = await hub.subscribe("u-1")
        assert await hub.publish(_event()) == 2
        assert tab1.queue.qsize() == tab2.queue.qsize() == 1

    async def test_fifo_per_listener(self) -> None:
        hub = BroadcastHub()
        sub = await hub.subscribe("u-1")
        for status in ("A", "B", "C"):
            await hub.publish(_event(status=status))
        received = [sub.queue.get_nowait()["data"]["new_status"] for _ in range(3)]
        assert received == ["A", "B", "C"]

    async def test_concurrent_publishes_keep_order(self) -> None:
        hub = BroadcastHub()
        sub = await hub.subscribe("u-1")
        statuses = [f"S{i}" for i in range(20)]
        await asyncio.gather(*(hub.publish(_event(status=s)) for s in statuses))
        received = [sub.queue.get_nowait()["data"]["new_status"] for _ in statuses]
        assert received == statuses

    async def test_full_queue_drops_only_that_listener(self) -> None:
        hub = BroadcastHub(queue_size=1)
        stalled = await hub.subscribe("u-1")
        healthy = await hub.subscribe("u-1")

        await hub.publish(_event(status="A"))
        healthy.queue.get_nowait()
        delivered = await hub.publish(_event(status="B"))

        assert delivered == 1
        assert stalled.closed is True
        assert hub.listener_count == 1
        assert healthy.queue.get_nowait()["data"]["new_status"] == "B"

    async def test_no_listeners(self) -> None:
        assert await BroadcastHub().publish(_event()) == 0

    async def test_on_change_event(self) -> None:
        hub = BroadcastHub()
        sub = await hub.subscribe("u-1")
        await hub.on_change_event(_event())
        assert sub.queue.qsize() == 1

    async def test_close_marks_all_closed(self) -> None:
        hub = BroadcastHub()
        sub = await hub.subscribe("u-1")
        await hub.close()
        assert sub.closed is True
        assert hub.listener_count == 0


class TestMessages:
    def test_connection(self) -> None:
        msg = connection_message("u-1")
        assert msg["type"] == "connection"
        assert msg["user_id"] == "u-1"
        assert "timestamp" in msg

    def test_heartbeat(self) -> None:
        assert heartbeat_message()["type"] == "heartbeat"

    def test_sse_frame(self) -> None:
        frame = sse_frame({"type": "heartbeat", "timestamp": "t"})
        assert frame.startswith(b"data: ")
        assert frame.endswith(b"\n\n")
        assert json.loads(frame[6:-2]) == {"type": "heartbeat", "timestamp": "t"}
