"""
techdash.api.routers

Handler groups, keyed by the names used in the route table.
"""

from __future__ import annotations

from fastapi import APIRouter

from techdash.api.routers import (
    audit,
    auth,
    dashboard,
    health,
    monitoring,
    public,
    realtime,
    system,
)
from techdash.api.routers.domain import DOMAIN_GROUPS, domain_router


def build_handler_groups() -> dict[str, APIRouter]:
    groups: dict[str, APIRouter] = {
        "public": public.router,
        "liveness": health.liveness,
        "readiness": health.readiness,
        "auth": auth.router,
        "dashboard": dashboard.router,
        "realtime": realtime.router,
        "audit": audit.router,
        "monitoring": monitoring.router,
        "system": system.router,
    }
    for group in DOMAIN_GROUPS:
        groups[group] = domain_router(group)
    return groups
