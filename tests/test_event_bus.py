from __future__ import annotations

import json

import pytest

from interview_navigator.services.event_bus import QUEUE_SIZE, EventBus
from interview_navigator.services.notifications import BOOKING_REQUEST, Notifier


@pytest.mark.asyncio
async def test_user_subscriber_only_sees_own_notifications():
    bus = EventBus(redis_url="")
    alice = await bus.subscribe("alice")
    everything = await bus.subscribe()

    notifier = Notifier(bus)
    assert await notifier.notify("alice", BOOKING_REQUEST, {"booking_id": "b-1"})
    assert await notifier.notify("bob", BOOKING_REQUEST, {"booking_id": "b-2"})
    await bus.publish({"kind": "booking_event", "booking_id": "b-1"})

    assert alice.qsize() == 1
    message = json.loads(alice.get_nowait())
    assert message["user_id"] == "alice"
    assert message["payload"] == {"booking_id": "b-1"}
    assert everything.qsize() == 3


@pytest.mark.asyncio
async def test_full_subscriber_does_not_block_others():
    bus = EventBus(redis_url="")
    slow = await bus.subscribe("alice")
    for index in range(QUEUE_SIZE):
        slow.put_nowait(str(index))
    fresh = await bus.subscribe("alice")

    await Notifier(bus).notify("alice", BOOKING_REQUEST)

    assert slow.qsize() == QUEUE_SIZE
    assert slow.get_nowait() == "0"
    assert fresh.qsize() == 1


@pytest.mark.asyncio
async def test_unsubscribed_queue_receives_nothing():
    bus = EventBus(redis_url="")
    queue = await bus.subscribe("alice")
    await bus.unsubscribe(queue)

    await Notifier(bus).notify("alice", BOOKING_REQUEST)

    assert queue.empty()
