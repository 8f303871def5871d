from __future__ import annotations

import asyncio
import contextlib

import pytest

from hydrai.models.prediction import ConsumptionLevel
from hydrai.state.bus import EventBus
from hydrai.state.events import DecodeErrorEvent, EventKind, LevelEvent, StreamEvent


def _level(label: str = "alto") -> LevelEvent:
    return LevelEvent(level=ConsumptionLevel.from_label(label), label=label)


def test_subscribers_receive_events_in_publish_order() -> None:
    bus = EventBus()
    first: list[StreamEvent] = []
    second: list[StreamEvent] = []
    bus.subscribe(first.append)
    bus.subscribe(second.append)

    events = [_level("ideal"), DecodeErrorEvent(reason="bad"), _level("alto")]
    for event in events:
        bus.publish(event)

    assert first == events
    assert second == events


def test_kind_filter_and_unsubscribe() -> None:
    bus = EventBus()
    received: list[StreamEvent] = []
    unsubscribe = bus.subscribe(received.append, kinds={EventKind.DECODE_ERROR})

    bus.publish(_level())
    bus.publish(DecodeErrorEvent(reason="bad"))
    unsubscribe()
    bus.publish(DecodeErrorEvent(reason="ignored"))

    assert [event.kind for event in received] == [EventKind.DECODE_ERROR]
    assert bus.subscriber_count == 0


def test_failing_subscriber_does_not_block_others() -> None:
    bus = EventBus()
    received: list[StreamEvent] = []

    def _boom(_event: StreamEvent) -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe(_boom)
    bus.subscribe(received.append)
    bus.publish(_level())

    assert len(received) == 1


@pytest.mark.asyncio
async def test_stream_yields_published_events() -> None:
    bus = EventBus()
    received: list[StreamEvent] = []

    async def _consume() -> None:
        async with contextlib.aclosing(bus.stream(kinds={EventKind.LEVEL})) as stream:
            async for event in stream:
                received.append(event)
                if len(received) == 2:
                    return

    consumer = asyncio.create_task(_consume())
    await asyncio.sleep(0)
    bus.publish(_level("ideal"))
    bus.publish(DecodeErrorEvent(reason="skipped"))
    bus.publish(_level("normal"))
    await asyncio.wait_for(consumer, timeout=1.0)

    assert [event.label for event in received] == ["ideal", "normal"]  # type: ignore[union-attr]
    assert bus.subscriber_count == 0
