"""
techdash.db.repositories.audit

Repository for audit trail rows.

Responsibilities:
- Append audit events.
- Query the trail newest-first, optionally narrowed to a route prefix or actor.
"""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from techdash.audit.events import AuditEvent
from techdash.db.models import AuditEventRecord


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, event: AuditEvent) -> AuditEventRecord:
        # Audit events are append-only (no update/delete) in normal operation.
        row = AuditEventRecord(
            actor_id=event.actor_id,
            action=event.action,
            path_prefix=event.path_prefix,
            outcome=event.outcome.value,
            occurred_at=event.timestamp,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_recent(
        self,
        *,
        path_prefix: str | None = None,
        actor_id: str | None = None,
        limit: int = 200,
    ) -> list[AuditEventRecord]:
        stmt = select(AuditEventRecord)
        if path_prefix is not None:
            stmt = stmt.where(AuditEventRecord.path_prefix == path_prefix)
        if actor_id is not None:
            stmt = stmt.where(AuditEventRecord.actor_id == actor_id)
        stmt = stmt.order_by(desc(AuditEventRecord.occurred_at)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Written by `techdash.audit.sinks.DatabaseAuditSink`; read by the `/audit` router.
