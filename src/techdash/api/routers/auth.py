"""
techdash.api.routers.auth

Session login/logout endpoints (public prefix `/auth`).

Responsibilities:
- Development login that establishes a session for a chosen identity (404 in prod).
- Logout (destroys the session and clears the cookie).
- Session introspection for the dashboard frontend.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from techdash.api.deps import settings_dep
from techdash.auth.deps import current_identity, session_context
from techdash.auth.models import Role, SessionIdentity
from techdash.auth.sessions import SessionContext
from techdash.errors import NotFound
from techdash.settings import Settings

router = APIRouter(tags=["auth"])


class DevLoginRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=256)
    display_name: str | None = Field(default=None, max_length=256)
    roles: list[Role] = Field(default_factory=lambda: [Role.technician])


class SessionResponse(BaseModel):
    user_id: str
    display_name: str
    roles: list[str]
    issued_at: str
    expires_at: str


@router.get("/login")
async def login_hint(
    next_path: str = Query("/dashboard", alias="next"),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    methods = [] if settings.is_production else ["POST /auth/dev-login"]
    return {"login_required": True, "next": next_path, "methods": methods}


@router.post("/dev-login", response_model=SessionResponse)
async def dev_login(
    body: DevLoginRequest,
    settings: Settings = Depends(settings_dep),
    session: SessionContext = Depends(session_context),
) -> dict[str, Any]:
    if settings.is_production:
        raise NotFound()

    now = datetime.now(tz=UTC)
    identity = SessionIdentity(
        user_id=body.user_id,
        display_name=body.display_name or body.user_id,
        roles=frozenset(body.roles),
        issued_at=now,
        expires_at=now + timedelta(seconds=settings.session_max_age_seconds),
    )
    await session.establish(identity)
    return identity.to_public()


@router.post("/logout")
async def logout(session: SessionContext = Depends(session_context)) -> dict[str, str]:
    await session.destroy()
    return {"status": "logged_out"}


@router.get("/session", response_model=SessionResponse)
async def current_session(identity: SessionIdentity = Depends(current_identity)) -> dict[str, Any]:
    return identity.to_public()


# --- Module Notes -----------------------------------------------------------
# Credential checks against a user directory are out of scope here; production
# deployments plug their own login endpoint into the same `SessionContext`.
