"""
techdash.auth.deps

FastAPI dependency functions for authentication state.

Responsibilities:
- Expose the request's `SessionContext` (set by the session stage).
- Expose the identity resolved by the dispatch gate.
"""

from __future__ import annotations

from fastapi import Request

from techdash.auth.identity import resolve_identity
from techdash.auth.models import SessionIdentity
from techdash.auth.sessions import SessionContext


def session_context(request: Request) -> SessionContext:
    session = getattr(request.state, "session", None)
    if session is None:
        # The session stage runs for every request that reaches a handler.
        raise RuntimeError("session stage did not run for this request")
    return session


def current_identity(request: Request) -> SessionIdentity:
    identity = getattr(request.state, "identity", None)
    if identity is not None:
        return identity
    # Public routes skip the gate; resolve on demand (raises Unauthenticated).
    return resolve_identity(getattr(request.state, "session", None))


# --- Module Notes -----------------------------------------------------------
# `Unauthenticated` raised here is rendered by the dispatch loop's error mapping.
