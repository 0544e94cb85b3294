"""
techdash.audit.sinks

Audit sinks: where recorded events go.

Responsibilities:
- Persist events through the persistence subsystem (`DatabaseAuditSink`).
- Keep events in memory (`MemoryAuditSink`) for tests and local tooling.
- Surface persistence problems as `AuditWriteFailure`.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from techdash.audit.events import AuditEvent
from techdash.db.repositories.audit import AuditRepo
from techdash.errors import AuditWriteFailure
from techdash.subsystems.persistence import Database


class AuditSink(Protocol):
    async def write(self, event: AuditEvent) -> None: ...


class DatabaseAuditSink:
    def __init__(self, database: Database) -> None:
        self._database = database

    async def write(self, event: AuditEvent) -> None:
        try:
            async with self._database.session() as session:
                await AuditRepo(session).add(event)
                await session.commit()
        except (SQLAlchemyError, RuntimeError) as e:
            # RuntimeError: persistence already closed during shutdown.
            raise AuditWriteFailure(str(e)) from e


class MemoryAuditSink:
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def write(self, event: AuditEvent) -> None:
        self.events.append(event)


# --- Module Notes -----------------------------------------------------------
# Sinks may raise; the interceptor is responsible for never letting that reach
# the caller.
