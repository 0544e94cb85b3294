"""
tests.test_auth

Sessions, identity resolution and the authorization gate, end to end.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from http.cookies import SimpleCookie
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from conftest import client_for, login, make_settings
from techdash.api.app import create_app
from techdash.audit.sinks import MemoryAuditSink
from techdash.auth.cookies import (
    CookieConfig,
    clear_cookie_header,
    read_session_token,
    set_cookie_header,
    sign_session_token,
)
from techdash.auth.gate import authorize
from techdash.auth.identity import resolve_identity
from techdash.auth.models import Role, SessionIdentity
from techdash.auth.sessions import CookieAction, SessionContext, SessionStore
from techdash.errors import Forbidden, Unauthenticated
from techdash.subsystems.cache import Cache

COOKIE = "techniker-dashboard.sid"


def _identity(*roles: Role, expires_in: float = 3600) -> SessionIdentity:
    now = datetime.now(tz=UTC)
    return SessionIdentity(
        user_id="u1",
        display_name="User One",
        roles=frozenset(roles),
        issued_at=now,
        expires_at=now + timedelta(seconds=expires_in),
    )


def test_resolve_identity_requires_a_session() -> None:
    store = SessionStore(Cache(), ttl=60)
    with pytest.raises(Unauthenticated):
        resolve_identity(None)
    with pytest.raises(Unauthenticated):
        resolve_identity(SessionContext(store))


def test_resolve_identity_rejects_expired_sessions() -> None:
    store = SessionStore(Cache(), ttl=60)
    session = SessionContext(store, token="t", identity=_identity(Role.viewer, expires_in=-1))

    with pytest.raises(Unauthenticated):
        resolve_identity(session)


def test_authorize_is_a_set_intersection() -> None:
    technician = _identity(Role.technician)

    assert authorize(frozenset({Role.technician, Role.admin}), technician) is technician
    with pytest.raises(Forbidden):
        authorize(frozenset({Role.admin}), technician)


@pytest.mark.asyncio
async def test_establish_rotates_the_token() -> None:
    cache = Cache()
    await cache.init()
    store = SessionStore(cache, ttl=60)
    session = SessionContext(store)

    first = await session.establish(_identity(Role.viewer))
    second = await session.establish(_identity(Role.admin))

    assert first != second
    assert await store.load(first) is None
    assert (await store.load(second)).roles == frozenset({Role.admin})
    assert session.cookie_action is CookieAction.set


@pytest.mark.asyncio
async def test_protected_route_without_session_is_401(client: httpx.AsyncClient) -> None:
    r = await client.get("/dashboard")

    assert r.status_code == 401
    assert r.json()["error"] == "unauthenticated"
    # No session is created for anonymous requests.
    assert "set-cookie" not in r.headers


@pytest.mark.asyncio
async def test_browser_without_session_is_redirected_to_login(client: httpx.AsyncClient) -> None:
    r = await client.get("/dashboard", headers={"Accept": "text/html"})

    assert r.status_code == 303
    assert r.headers["location"] == "/auth/login?next=/dashboard"


@pytest.mark.asyncio
async def test_login_redirect_encodes_the_return_path(client: httpx.AsyncClient) -> None:
    r = await client.get("/reports/a&b=c", headers={"Accept": "text/html"})

    assert r.status_code == 303
    location = r.headers["location"]
    assert location == "/auth/login?next=/reports/a%26b%3Dc"
    assert parse_qs(urlsplit(location).query) == {"next": ["/reports/a&b=c"]}


def test_cookie_headers_parse_back_with_their_attributes() -> None:
    cfg = CookieConfig(name=COOKIE, secret="s" * 32, max_age=600, secure=True)
    value = sign_session_token(cfg=cfg, token="opaque")

    issued = SimpleCookie(set_cookie_header(cfg=cfg, value=value))[COOKIE]
    assert read_session_token(cfg=cfg, value=issued.value) == "opaque"
    assert issued["max-age"] == "600"
    assert issued["path"] == "/"
    assert issued["samesite"] == "lax"
    assert issued["httponly"] is True
    assert issued["secure"] is True

    cleared = SimpleCookie(clear_cookie_header(cfg=cfg))[COOKIE]
    assert cleared.value == ""
    assert cleared["max-age"] == "0"


@pytest.mark.asyncio
async def test_login_sets_a_hardened_cookie(client: httpx.AsyncClient) -> None:
    r = await login(client, "tech-1", "technician")

    cookie = r.headers["set-cookie"]
    assert cookie.startswith(f"{COOKIE}=")
    assert "HttpOnly" in cookie
    assert "SameSite=lax" in cookie
    assert "Max-Age=86400" in cookie
    assert "Secure" not in cookie
    assert r.json()["roles"] == ["technician"]

    r = await client.get("/dashboard")
    assert r.status_code == 200
    assert r.json()["user"]["user_id"] == "tech-1"

    r = await client.get("/auth/session")
    assert r.json()["user_id"] == "tech-1"


@pytest.mark.asyncio
async def test_logout_clears_the_session(client: httpx.AsyncClient) -> None:
    await login(client, "tech-1")

    r = await client.post("/auth/logout")
    assert r.status_code == 200
    assert "Max-Age=0" in r.headers["set-cookie"]

    assert (await client.get("/dashboard")).status_code == 401


@pytest.mark.asyncio
async def test_old_cookie_is_useless_after_relogin(client: httpx.AsyncClient) -> None:
    await login(client, "tech-1")
    old = client.cookies[COOKIE]
    await login(client, "tech-1")

    client.cookies.clear()
    client.cookies.set(COOKIE, old)
    r = await client.get("/dashboard")

    assert r.status_code == 401
    assert "Max-Age=0" in r.headers["set-cookie"]


@pytest.mark.asyncio
async def test_tampered_cookie_is_rejected_and_cleared(client: httpx.AsyncClient) -> None:
    client.cookies.set(COOKIE, "not-a-signed-value")

    r = await client.get("/dashboard")

    assert r.status_code == 401
    assert "Max-Age=0" in r.headers["set-cookie"]


@pytest.mark.asyncio
async def test_role_mismatch_is_403_and_match_reaches_handler(client: httpx.AsyncClient) -> None:
    await login(client, "tech-1", "technician")
    assert (await client.get("/users")).status_code == 403

    await login(client, "boss", "admin")
    r = await client.get("/users")
    assert r.status_code == 200
    assert r.json()["group"] == "users"


@pytest.mark.asyncio
async def test_public_route_sees_a_valid_session(client: httpx.AsyncClient) -> None:
    await login(client, "tech-1")

    r = await client.get("/")

    assert r.status_code == 200
    assert r.json()["user"]["user_id"] == "tech-1"


@pytest.mark.asyncio
async def test_dev_login_is_hidden_in_production(tmp_path: Path) -> None:
    settings = make_settings(tmp_path, env="prod")
    app = create_app(settings=settings, audit_sink=MemoryAuditSink())
    async with app.router.lifespan_context(app), client_for(app) as client:
        r = await client.post("/auth/dev-login", json={"user_id": "x", "roles": ["admin"]})
        hint = await client.get("/auth/login")

    assert r.status_code == 404
    assert hint.json()["methods"] == []


# --- Module Notes -----------------------------------------------------------
# The cookie carries a signed opaque token; identity never leaves the server.
