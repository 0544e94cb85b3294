"""
techdash.subsystems.realtime

Realtime fan-out of bus events to connected dashboard clients.

Responsibilities:
- Relay every event bus event to each connected client queue.
- Drop events for slow clients instead of buffering without bound.
- End all client streams at shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

from techdash.observability.logging import get_logger
from techdash.subsystems.event_bus import WILDCARD, Event, EventBus

log = get_logger(__name__)

_CLOSE = None


class RealtimeHub:
    name = "realtime"

    def __init__(self, bus: EventBus, *, client_buffer: int = 100) -> None:
        self._bus = bus
        self._client_buffer = client_buffer
        self._clients: set[asyncio.Queue[Event | None]] = set()
        self._unsubscribe: Callable[[], None] | None = None
        self._open = False

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def accepting(self) -> bool:
        return self._open

    async def init(self) -> None:
        self._unsubscribe = self._bus.subscribe(WILDCARD, self._broadcast)
        self._open = True

    async def _broadcast(self, event: Event) -> None:
        for queue in tuple(self._clients):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                log.warning("realtime_event_dropped", topic=event.topic)

    async def stream(self) -> AsyncIterator[Event]:
        """Yield events for one client until it disconnects or the hub shuts down."""

        if not self._open:
            return
        queue: asyncio.Queue[Event | None] = asyncio.Queue(maxsize=self._client_buffer)
        self._clients.add(queue)
        try:
            while True:
                event = await queue.get()
                if event is _CLOSE:
                    return
                yield event
        finally:
            self._clients.discard(queue)

    async def shutdown(self, timeout: float) -> None:
        self._open = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for queue in tuple(self._clients):
            # Make room for the close marker if the client is behind.
            while queue.full():
                queue.get_nowait()
            queue.put_nowait(_CLOSE)


# --- Module Notes -----------------------------------------------------------
# The wire format (Server-Sent Events) lives in `techdash.api.routers.realtime`;
# this module only knows about queues.
