"""
techdash.auth.sessions

Server-side session storage and the per-request session context.

Responsibilities:
- Store session identities keyed by opaque tokens (cache-backed, TTL bounded).
- Expose a request-scoped `SessionContext` that handlers use to log in/out.
- Record whether the response must set or clear the session cookie.
"""

from __future__ import annotations

import enum
import secrets

from techdash.auth.models import SessionIdentity
from techdash.subsystems.cache import Cache

_KEY_PREFIX = "session:"


class SessionStore:
    def __init__(self, cache: Cache, *, ttl: int) -> None:
        self._cache = cache
        self._ttl = ttl

    async def load(self, token: str) -> SessionIdentity | None:
        identity = self._cache.get(_KEY_PREFIX + token)
        return identity if isinstance(identity, SessionIdentity) else None

    async def save(self, token: str, identity: SessionIdentity) -> None:
        self._cache.set(_KEY_PREFIX + token, identity, ttl=self._ttl)

    async def delete(self, token: str) -> None:
        self._cache.delete(_KEY_PREFIX + token)


class CookieAction(enum.Enum):
    none = "none"
    set = "set"
    clear = "clear"


class SessionContext:
    """
    Session state for one request. Never creates a session on its own: only
    `establish` (login) does, always under a freshly generated token.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        token: str | None = None,
        identity: SessionIdentity | None = None,
    ) -> None:
        self._store = store
        self._token = token
        self._identity = identity
        self.cookie_action = CookieAction.none

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def identity(self) -> SessionIdentity | None:
        return self._identity

    async def establish(self, identity: SessionIdentity) -> str:
        # Rotate on login so a token planted before authentication is never promoted.
        if self._token is not None:
            await self._store.delete(self._token)
        token = secrets.token_urlsafe(32)
        await self._store.save(token, identity)
        self._token = token
        self._identity = identity
        self.cookie_action = CookieAction.set
        return token

    async def destroy(self) -> None:
        if self._token is not None:
            await self._store.delete(self._token)
        self._token = None
        self._identity = None
        self.cookie_action = CookieAction.clear


# --- Module Notes -----------------------------------------------------------
# The cache applies the session max age as TTL, so expired sessions disappear
# from the store without a separate sweep (the scheduler still purges them).
