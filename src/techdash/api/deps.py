"""
techdash.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, subsystems and DB sessions.
- Encapsulate app.state access patterns (subsystems, audit interceptor).
- Build the shared view context (app name, version, env, year, user).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from techdash import __version__
from techdash.audit.interceptor import AuditInterceptor
from techdash.bootstrap import Subsystems
from techdash.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Set once in `techdash.api.app.create_app`.
    return request.app.state.settings  # type: ignore[no-any-return]


def subsystems_dep(request: Request) -> Subsystems:
    return request.app.state.subsystems  # type: ignore[no-any-return]


def audit_dep(request: Request) -> AuditInterceptor:
    return request.app.state.audit  # type: ignore[no-any-return]


async def db_session(
    subsystems: Subsystems = Depends(subsystems_dep),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the caller.
    async with subsystems.database.session() as session:
        yield session


def view_context(request: Request, settings: Settings = Depends(settings_dep)) -> dict[str, Any]:
    identity = getattr(request.state, "identity", None)
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "env": settings.env,
        "year": datetime.now(tz=UTC).year,
        "user": identity.to_public() if identity is not None else None,
    }


# --- Module Notes -----------------------------------------------------------
# Identity dependencies live in `techdash.auth.deps`; they read what the
# pipeline stored on request.state.
