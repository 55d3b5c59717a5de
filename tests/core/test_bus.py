"""Tests for the Event Bus."""

import pytest
from tally.core.bus import EventBus
from tally.core.events import Event, EventType


@pytest.mark.asyncio
async def test_emit_and_subscribe(bus: EventBus):
    """Basic pub/sub works."""
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.on(EventType.QUEUE_ENQUEUED, handler)
    await bus.emit(Event(type=EventType.QUEUE_ENQUEUED, data={"size": 1}))

    assert len(received) == 1
    assert received[0].data == {"size": 1}


@pytest.mark.asyncio
async def test_wildcard_subscription(bus: EventBus):
    """Wildcard 'queue:*' matches 'queue:dropped'."""
    received = []

    async def handler(event: Event):
        received.append(event.type)

    bus.on("queue:*", handler)

    await bus.emit(Event(type=EventType.QUEUE_ENQUEUED))
    await bus.emit(Event(type=EventType.QUEUE_DROPPED))
    await bus.emit(Event(type=EventType.DELIVERY_SENT))  # should NOT match

    assert received == ["queue:enqueued", "queue:dropped"]


@pytest.mark.asyncio
async def test_global_wildcard(bus: EventBus):
    received = []

    async def handler(event: Event):
        received.append(event.type)

    bus.on(EventType.ALL, handler)
    await bus.emit(Event(type=EventType.CONNECTIVITY_OFFLINE))
    await bus.emit(Event(type=EventType.SYSTEM_START))

    assert received == ["connectivity:offline", "system:start"]


@pytest.mark.asyncio
async def test_unsubscribe(bus: EventBus):
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.on("delivery:sent", handler)
    assert bus.subscriber_count == 1
    bus.off("delivery:sent", handler)
    assert bus.subscriber_count == 0

    await bus.emit(Event(type="delivery:sent"))
    assert received == []


@pytest.mark.asyncio
async def test_middleware_order(bus: EventBus):
    """Middleware runs in registration order around delivery."""
    log = []

    async def first(event, next_handler):
        log.append("first:before")
        result = await next_handler(event)
        log.append("first:after")
        return result

    async def second(event, next_handler):
        log.append("second:before")
        result = await next_handler(event)
        log.append("second:after")
        return result

    async def handler(event: Event):
        log.append("handler")

    bus.use(first)
    bus.use(second)
    bus.on("queue:sent", handler)
    await bus.emit(Event(type="queue:sent"))

    assert log == ["first:before", "second:before", "handler", "second:after", "first:after"]


@pytest.mark.asyncio
async def test_subscriber_error_does_not_propagate(bus: EventBus):
    """A failing subscriber does not stop the others or the emitter."""
    received = []

    async def broken(event: Event):
        raise RuntimeError("boom")

    async def healthy(event: Event):
        received.append(event.type)

    bus.on("delivery:failed", broken)
    bus.on("delivery:failed", healthy)

    event = await bus.emit(Event(type="delivery:failed"))

    assert event.type == "delivery:failed"
    assert received == ["delivery:failed"]
