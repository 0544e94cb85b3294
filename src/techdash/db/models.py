"""
techdash.db.models

Persistence schema owned by the request backbone.

Responsibilities:
- Define the append-only audit trail table written by the audit sink.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from techdash.db.base import Base


class AuditEventRecord(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    actor_id: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(512), nullable=False)
    path_prefix: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_audit_prefix_occurred", "path_prefix", "occurred_at"),)


# --- Module Notes -----------------------------------------------------------
# Rows are never updated or deleted by the application; retention is an ops concern.
