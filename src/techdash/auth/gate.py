"""
techdash.auth.gate

Authorization gate (RBAC).

Responsibilities:
- Allow a caller when its role set intersects the route's required roles.
"""

from __future__ import annotations

from techdash.auth.models import Role, SessionIdentity
from techdash.errors import Forbidden


def authorize(required_roles: frozenset[Role], identity: SessionIdentity) -> SessionIdentity:
    # Requirements are normalized at descriptor construction; this is a pure set test.
    if required_roles.isdisjoint(identity.roles):
        raise Forbidden("Insufficient role")
    return identity


# --- Module Notes -----------------------------------------------------------
# Public routes never call into this module; there is no implicit wildcard role.
