"""Publish/subscribe fan-out for stream events.

Events are published once, in order, and every subscriber receives them
independently.  A failing subscriber is logged and does not prevent
delivery to the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass

from hydrai.state.events import EventKind, StreamEvent

_logger = logging.getLogger(__name__)

EventCallback = Callable[[StreamEvent], None]


@dataclass(slots=True)
class _Subscriber:
    callback: EventCallback
    kinds: frozenset[EventKind] | None

    def wants(self, event: StreamEvent) -> bool:
        return self.kinds is None or event.kind in self.kinds


class EventBus:
    """In-process event bus.

    Usage::

        unsubscribe = bus.subscribe(print, kinds={EventKind.ALERT})
        ...
        unsubscribe()

    or, from a coroutine::

        async for event in bus.stream():
            ...
    """

    def __init__(self) -> None:
        self._subscribers: list[_Subscriber] = []

    def subscribe(
        self,
        callback: EventCallback,
        *,
        kinds: Iterable[EventKind] | None = None,
    ) -> Callable[[], None]:
        """Register *callback*; returns a function that removes it again."""
        subscriber = _Subscriber(callback=callback, kinds=frozenset(kinds) if kinds is not None else None)
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            self._subscribers = [cand for cand in self._subscribers if cand is not subscriber]

        return _unsubscribe

    def publish(self, event: StreamEvent) -> None:
        for subscriber in list(self._subscribers):
            if not subscriber.wants(event):
                continue
            try:
                subscriber.callback(event)
            except Exception:
                _logger.warning("Event subscriber failed for %s event", event.kind, exc_info=True)

    async def stream(
        self,
        *,
        kinds: Iterable[EventKind] | None = None,
        maxsize: int = 0,
    ) -> AsyncIterator[StreamEvent]:
        """Yield published events as an async channel until the consumer stops."""
        queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=maxsize)

        def _enqueue(event: StreamEvent) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                _logger.warning("Event stream consumer is lagging; dropping %s event", event.kind)

        unsubscribe = self.subscribe(_enqueue, kinds=kinds)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
