"""
tests.conftest

Shared fixtures: test settings on a temporary SQLite file, an app with real
subsystems driven through its lifespan, and an in-memory audit sink.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from techdash.api.app import create_app
from techdash.audit.sinks import MemoryAuditSink
from techdash.settings import Settings


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "env": "test",
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'techdash.db'}",
        "session_secret": "test-secret-" + "x" * 32,
        "allowed_origins": ["http://dashboard.example"],
        "shutdown_deadline_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(**values)


def client_for(app: FastAPI, address: str = "203.0.113.7") -> httpx.AsyncClient:
    # httpx 0.28 ASGITransport does not manage lifespan automatically; fixtures do it explicitly.
    transport = httpx.ASGITransport(app=app, client=(address, 51000))
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


async def login(client: httpx.AsyncClient, user_id: str, *roles: str) -> httpx.Response:
    r = await client.post(
        "/auth/dev-login", json={"user_id": user_id, "roles": list(roles or ("technician",))}
    )
    assert r.status_code == 200, r.text
    return r


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest_asyncio.fixture
async def app(
    settings: Settings, audit_sink: MemoryAuditSink, clock: FakeClock
) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings, audit_sink=audit_sink, rate_limit_clock=clock)
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with client_for(app) as c:
        yield c


# --- Module Notes -----------------------------------------------------------
# Audit writes are background tasks; tests call `app.state.audit.drain(...)`
# before asserting on recorded events.
