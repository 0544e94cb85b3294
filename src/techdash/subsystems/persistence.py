"""
techdash.subsystems.persistence

Database subsystem (async SQLAlchemy engine + session factory).

Responsibilities:
- Create the engine and sessionmaker once at startup.
- Create tables in dev/test; prod relies on managed migrations.
- Dispose the engine (close pooled connections) at shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from techdash.db.init_db import init_db
from techdash.db.session import create_engine, create_sessionmaker
from techdash.observability.logging import get_logger
from techdash.settings import Settings

log = get_logger(__name__)


class Database:
    name = "persistence"

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("persistence is not initialized")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("persistence is not initialized")
        return self._sessionmaker

    async def init(self) -> None:
        engine = create_engine(self._settings)
        # Fail startup early when the database is unreachable.
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        if self._settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically.
            await init_db(engine)
        self._engine = engine
        self._sessionmaker = create_sessionmaker(engine)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.sessionmaker() as session:
            yield session

    async def ping(self) -> None:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    async def shutdown(self, timeout: float) -> None:
        # Dispose the engine to close pools/FDs gracefully.
        if self._engine is not None:
            await self._engine.dispose()
            log.info("persistence_closed")
        self._sessionmaker = None
        self._engine = None
