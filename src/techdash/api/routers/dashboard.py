"""
techdash.api.routers.dashboard

Landing view for signed-in users.

Responsibilities:
- Return the view context plus a summary of recent activity on the bus.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from techdash.api.deps import subsystems_dep, view_context
from techdash.bootstrap import Subsystems

router = APIRouter(tags=["dashboard"])


@router.get("")
async def dashboard(
    ctx: dict[str, Any] = Depends(view_context),
    subsystems: Subsystems = Depends(subsystems_dep),
) -> dict[str, Any]:
    return {
        **ctx,
        "realtime": {
            "stream": "/realtime/stream",
            "clients": subsystems.realtime.client_count,
        },
    }
