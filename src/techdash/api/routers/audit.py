"""
techdash.api.routers.audit

Audit trail listing (admin only, via the route table).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from techdash.api.deps import db_session
from techdash.db.repositories.audit import AuditRepo

router = APIRouter(tags=["audit"])


@router.get("")
async def list_audit_events(
    path_prefix: str | None = None,
    actor_id: str | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    rows = await AuditRepo(session).list_recent(
        path_prefix=path_prefix, actor_id=actor_id, limit=limit
    )
    return {
        "events": [
            {
                "id": str(row.id),
                "actor_id": row.actor_id,
                "action": row.action,
                "path_prefix": row.path_prefix,
                "outcome": row.outcome,
                "occurred_at": row.occurred_at.isoformat(),
            }
            for row in rows
        ]
    }
