"""
techdash.auth.identity

Identity resolver.

Responsibilities:
- Turn the request's session context into a `SessionIdentity`, or fail with
  `Unauthenticated` (never a null identity).
"""

from __future__ import annotations

from datetime import UTC, datetime

from techdash.auth.models import SessionIdentity
from techdash.auth.sessions import SessionContext
from techdash.errors import Unauthenticated


def resolve_identity(
    session: SessionContext | None, *, now: datetime | None = None
) -> SessionIdentity:
    if session is None or session.identity is None:
        raise Unauthenticated("Authentication required")

    identity = session.identity
    # Expired sessions are rejected here; removal is left to the store TTL.
    if identity.is_expired(now or datetime.now(tz=UTC)):
        raise Unauthenticated("Session expired")
    return identity
