"""
techdash.api.routers.realtime

Realtime channel over Server-Sent Events.

Responsibilities:
- Stream event bus events to the dashboard (`/realtime/stream`).
- Report channel status (`/realtime/status`).
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from techdash.api.deps import subsystems_dep
from techdash.bootstrap import Subsystems
from techdash.subsystems.event_bus import Event
from techdash.subsystems.realtime import RealtimeHub

router = APIRouter(tags=["realtime"])


def format_sse(event: Event) -> str:
    data = json.dumps({"payload": event.payload, "published_at": event.published_at.isoformat()})
    return f"event: {event.topic}\ndata: {data}\n\n"


async def _event_stream(hub: RealtimeHub) -> AsyncIterator[str]:
    # Comment line first so the client sees the stream open immediately.
    yield ": connected\n\n"
    async for event in hub.stream():
        yield format_sse(event)


@router.get("/stream")
async def stream(subsystems: Subsystems = Depends(subsystems_dep)) -> StreamingResponse:
    return StreamingResponse(
        _event_stream(subsystems.realtime),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/status")
async def status(subsystems: Subsystems = Depends(subsystems_dep)) -> dict[str, object]:
    hub = subsystems.realtime
    return {"accepting": hub.accepting, "clients": hub.client_count}


# --- Module Notes -----------------------------------------------------------
# Streams end when the hub shuts down, which lets the server finish draining
# connections within the shutdown deadline.
