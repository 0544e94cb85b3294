"""
techdash.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings, with backend-specific options.
- Create the async sessionmaker used by the persistence subsystem.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from techdash.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    url = make_url(settings.database_url)
    options: dict[str, Any] = {}
    if url.get_backend_name() == "sqlite":
        # Audit writes and request reads share one file; wait on locks instead of failing.
        options["connect_args"] = {"timeout": 15}
    else:
        # pool_pre_ping helps detect stale connections in long-lived processes.
        options["pool_pre_ping"] = True
    return create_async_engine(url, **options)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: audit rows are read after the session commits.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# --- Module Notes -----------------------------------------------------------
# Sessions are opened through `techdash.subsystems.persistence.Database.session`,
# never from module-level state.
