"""
techdash.audit.events

Audit event model.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

ANONYMOUS = "anonymous"


class AuditOutcome(enum.StrEnum):
    success = "success"
    error = "error"
    denied = "denied"

    @classmethod
    def from_status(cls, status_code: int) -> AuditOutcome:
        if status_code in (401, 403):
            return cls.denied
        if status_code >= 500:
            return cls.error
        return cls.success


@dataclass(frozen=True, slots=True)
class AuditEvent:
    actor_id: str
    action: str
    path_prefix: str
    outcome: AuditOutcome
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
