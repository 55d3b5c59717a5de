"""
Tally Event Bus.

Senders, the retry queue and the connectivity monitor publish here; the
UI layer and the event logger listen. An emitted event first passes
through the middleware stack (first registered is outermost), then
reaches every subscriber whose pattern matches its type.

Patterns are fnmatch-style: an exact type, "queue:*", or "*".
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from typing import Awaitable, Callable

from tally.core.events import Event

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Awaitable[None]]
MiddlewareNext = Callable[[Event], Awaitable[Event]]
MiddlewareFunc = Callable[[Event, MiddlewareNext], Awaitable[Event]]


class EventBus:
    """
    Usage:
        bus = EventBus()
        bus.on("queue:*", refresh_badge)
        bus.use(event_logger.middleware)

        await bus.emit(Event(type=EventType.QUEUE_ENQUEUED, data={"size": 1}))
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[str, EventHandler]] = []
        self._stack: list[MiddlewareFunc] = []

    def on(self, pattern: str, handler: EventHandler) -> None:
        self._subscriptions.append((pattern, handler))

    def off(self, pattern: str, handler: EventHandler) -> None:
        self._subscriptions = [
            (p, h) for p, h in self._subscriptions if not (p == pattern and h is handler)
        ]

    def use(self, middleware: MiddlewareFunc) -> None:
        """
        Wrap delivery in middleware. Each one gets the event and a
        continuation, and returns what the continuation returns:

            async def stamp(event: Event, proceed: MiddlewareNext) -> Event:
                event.data.setdefault("school", "bole")
                return await proceed(event)
        """
        self._stack.append(middleware)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def emit(self, event: Event) -> Event:
        """Run the middleware stack, then notify subscribers. Subscriber errors are logged."""
        return await self._step(0, event)

    async def _step(self, index: int, event: Event) -> Event:
        if index == len(self._stack):
            await self._notify(event)
            return event
        return await self._stack[index](event, lambda e: self._step(index + 1, e))

    async def _notify(self, event: Event) -> None:
        handlers = self._matching(event.type)
        if not handlers:
            return
        outcomes = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, outcome in zip(handlers, outcomes):
            if isinstance(outcome, Exception):
                name = getattr(handler, "__qualname__", repr(handler))
                logger.error(f"Handler {name} failed on {event.type}: {outcome}", exc_info=outcome)

    def _matching(self, event_type: str) -> list[EventHandler]:
        return [
            h
            for p, h in self._subscriptions
            if p == event_type or fnmatch.fnmatchcase(event_type, p)
        ]
