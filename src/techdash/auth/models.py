"""
techdash.auth.models

Auth domain models.

Responsibilities:
- Define the closed role set.
- Define the session identity (`SessionIdentity`) resolved per request.
- Normalize role requirements (single role or collection) into one set type.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any


class Role(enum.StrEnum):
    admin = "admin"
    manager = "manager"
    technician = "technician"
    viewer = "viewer"


RoleRequirement = Role | str | Iterable[Role | str]


def normalize_roles(requirement: RoleRequirement) -> frozenset[Role]:
    """
    Accept a single role or any collection of roles; always return a frozenset.
    Unknown role names raise ValueError.
    """

    if isinstance(requirement, str):
        return frozenset({Role(requirement)})
    return frozenset(Role(r) for r in requirement)


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """
    Authenticated caller identity, stored server-side under an opaque session token.
    """

    user_id: str
    display_name: str
    roles: frozenset[Role]
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_public(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "roles": sorted(r.value for r in self.roles),
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


# --- Module Notes -----------------------------------------------------------
# Keep this model minimal; it is used across the pipeline, the gate and handlers.
