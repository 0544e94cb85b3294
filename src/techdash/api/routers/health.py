"""
techdash.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`): every subsystem READY and the DB reachable.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from techdash.api.deps import subsystems_dep
from techdash.bootstrap import Subsystems

liveness = APIRouter(tags=["health"])
readiness = APIRouter(tags=["health"])


@liveness.get("")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@readiness.get("")
async def readyz(subsystems: Subsystems = Depends(subsystems_dep)) -> JSONResponse:
    registry = subsystems.registry
    if not registry.ready:
        return JSONResponse(
            {"status": "not_ready", "subsystems": registry.status()}, status_code=503
        )
    # Readiness: verify critical dependency (DB) is reachable.
    await subsystems.database.ping()
    return JSONResponse({"status": "ready", "subsystems": registry.status()})


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating.
