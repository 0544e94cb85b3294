"""
techdash.subsystems.event_bus

In-process publish/subscribe bus.

Responsibilities:
- Deliver published events to topic subscribers (and `*` subscribers) asynchronously.
- Isolate subscriber failures from publishers.
- Finish pending deliveries within the shutdown budget.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from techdash.observability.logging import get_logger

log = get_logger(__name__)

WILDCARD = "*"


@dataclass(frozen=True, slots=True)
class Event:
    topic: str
    payload: dict[str, Any]
    published_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


Handler = Callable[[Event], Awaitable[None]]


class EventBus:
    name = "event_bus"

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._pending: set[asyncio.Task[None]] = set()
        self._open = False

    async def init(self) -> None:
        self._open = True

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers.get(topic, []):
                self._handlers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: dict[str, Any] | None = None) -> int:
        """
        Schedule delivery to every matching subscriber; returns the number scheduled.
        Publishing on a closed bus is dropped with a warning.
        """

        if not self._open:
            log.warning("event_dropped", topic=topic, reason="bus_closed")
            return 0
        event = Event(topic=topic, payload=payload or {})
        handlers = [*self._handlers.get(topic, ()), *self._handlers.get(WILDCARD, ())]
        for handler in handlers:
            task = asyncio.get_running_loop().create_task(self._deliver(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(handlers)

    async def _deliver(self, handler: Handler, event: Event) -> None:
        try:
            await handler(event)
        except Exception:
            log.exception("event_handler_failed", topic=event.topic)

    async def shutdown(self, timeout: float) -> None:
        self._open = False
        if self._pending:
            _, still_running = await asyncio.wait(set(self._pending), timeout=timeout)
            for task in still_running:
                task.cancel()
        self._handlers.clear()
