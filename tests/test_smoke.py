"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts all subsystems and the readiness probe works in test mode.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from conftest import make_settings
from techdash.api.app import create_app
from techdash.audit.sinks import MemoryAuditSink


@pytest.mark.asyncio
async def test_health_endpoints(tmp_path: Path) -> None:
    app = create_app(settings=make_settings(tmp_path), audit_sink=MemoryAuditSink())

    # httpx 0.28 ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"

            r = await client.get("/readyz")
            assert r.status_code == 200
            body = r.json()
            assert body["status"] == "ready"
            assert set(body["subsystems"].values()) == {"READY"}

    assert set(app.state.subsystems.registry.status().values()) == {"STOPPED"}


@pytest.mark.asyncio
async def test_welcome_page_is_public(client: httpx.AsyncClient) -> None:
    r = await client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["app_name"] == "Digitaler Techniker Dashboard"
    assert body["user"] is None


@pytest.mark.asyncio
async def test_unmatched_path_is_404_with_message(client: httpx.AsyncClient) -> None:
    r = await client.get("/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "not_found", "message": "This route does not exist."}
    # Rejections still carry the protective headers and the request id.
    assert r.headers["x-content-type-options"] == "nosniff"
    assert "x-request-id" in r.headers


@pytest.mark.asyncio
async def test_prefix_match_respects_segment_boundary(client: httpx.AsyncClient) -> None:
    r = await client.get("/jobsx")
    assert r.status_code == 404


# --- Module Notes -----------------------------------------------------------
# Route-level behavior (auth, RBAC, audit) is covered in the dedicated test modules.
