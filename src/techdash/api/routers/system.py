"""
techdash.api.routers.system

Runtime information for administrators.
"""

from __future__ import annotations

import os
import platform
import time
from typing import Any

from fastapi import APIRouter, Depends, Request

from techdash.api.deps import view_context

router = APIRouter(tags=["system"])


@router.get("")
async def system_info(
    request: Request,
    ctx: dict[str, Any] = Depends(view_context),
) -> dict[str, Any]:
    started = request.app.state.started_at
    return {
        **ctx,
        "runtime": {
            "python": platform.python_version(),
            "platform": platform.platform(),
            "pid": os.getpid(),
            "uptime_seconds": round(time.monotonic() - started, 1),
        },
    }
