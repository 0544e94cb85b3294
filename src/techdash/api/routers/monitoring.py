"""
techdash.api.routers.monitoring

Operational view of the running process.

Responsibilities:
- Report subsystem lifecycle states and readiness.
- Report scheduler jobs, audit counters and realtime client count.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from techdash.api.deps import audit_dep, subsystems_dep
from techdash.audit.interceptor import AuditInterceptor
from techdash.bootstrap import Subsystems

router = APIRouter(tags=["monitoring"])


@router.get("")
async def monitoring(
    subsystems: Subsystems = Depends(subsystems_dep),
    audit: AuditInterceptor = Depends(audit_dep),
) -> dict[str, Any]:
    return {
        "ready": subsystems.registry.ready,
        "subsystems": subsystems.registry.status(),
        "scheduler": {
            "accepting": subsystems.scheduler.accepting,
            "in_flight": subsystems.scheduler.in_flight,
            "jobs": subsystems.scheduler.status(),
        },
        "audit": {"recorded": audit.recorded, "failed": audit.failed, "pending": audit.pending},
        "realtime": {"clients": subsystems.realtime.client_count},
        "cache": {"entries": len(subsystems.cache)},
    }
