"""
techdash.pipeline.stages

The security middleware chain as an ordered list of stage objects.

Responsibilities:
- Protective response headers.
- Cross-origin allow-list enforcement (before any body is read).
- Global fixed-window rate limiting keyed by client address.
- Bounded body buffering and JSON/form decoding.
- Multipart upload decoding under the same ceiling.
- Session lookup (never creation).

Each stage returns a terminal response, raises a `RequestError`, or returns
None to let the next stage run.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Protocol

from starlette.datastructures import MutableHeaders, UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect
from starlette.responses import Response

from techdash.auth.cookies import (
    CookieConfig,
    CookieValidationError,
    clear_cookie_header,
    read_session_token,
    set_cookie_header,
    sign_session_token,
)
from techdash.auth.sessions import CookieAction, SessionContext, SessionStore
from techdash.errors import BadRequest, OriginRejected, PayloadTooLarge, RateLimited
from techdash.observability.logging import get_logger
from techdash.pipeline.exchange import Exchange
from techdash.pipeline.ratelimit import FixedWindowRateLimiter

log = get_logger(__name__)


class Stage(Protocol):
    name: str

    async def process(self, exchange: Exchange) -> Response | None: ...


# Defaults mirror helmet's; applied to every response, including rejections.
SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersStage:
    name = "security_headers"

    def __init__(self, headers: dict[str, str] | None = None) -> None:
        self._headers = dict(SECURITY_HEADERS if headers is None else headers)

    async def process(self, exchange: Exchange) -> Response | None:
        exchange.add_response_hook(self._apply)
        return None

    def _apply(self, headers: MutableHeaders) -> None:
        for key, value in self._headers.items():
            headers[key] = value


class OriginPolicyStage:
    name = "origin_policy"

    def __init__(
        self,
        allowed_origins: Iterable[str],
        *,
        allow_methods: str = "GET,HEAD,PUT,PATCH,POST,DELETE",
        max_age: int = 600,
    ) -> None:
        self._allowed = frozenset(o.rstrip("/") for o in allowed_origins)
        self._allow_methods = allow_methods
        self._max_age = max_age

    def _same_origin(self, exchange: Exchange, origin: str) -> bool:
        host = exchange.headers.get("host")
        return host is not None and origin == f"{exchange.scope.get('scheme', 'http')}://{host}"

    async def process(self, exchange: Exchange) -> Response | None:
        origin = exchange.headers.get("origin")
        if origin is None:
            return None
        origin = origin.rstrip("/")
        if origin not in self._allowed and not self._same_origin(exchange, origin):
            log.info("origin_rejected", origin=origin)
            raise OriginRejected()

        def cors_headers(headers: MutableHeaders) -> None:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"
            headers.add_vary_header("Origin")

        exchange.add_response_hook(cors_headers)

        if exchange.method == "OPTIONS" and "access-control-request-method" in exchange.headers:
            # Preflight ends here; it never reaches rate limiting or handlers.
            preflight = {
                "Access-Control-Allow-Methods": self._allow_methods,
                "Access-Control-Max-Age": str(self._max_age),
            }
            requested = exchange.headers.get("access-control-request-headers")
            if requested:
                preflight["Access-Control-Allow-Headers"] = requested
            return Response(status_code=204, headers=preflight)
        return None


class RateLimitStage:
    name = "rate_limit"

    def __init__(self, limiter: FixedWindowRateLimiter) -> None:
        self._limiter = limiter

    async def process(self, exchange: Exchange) -> Response | None:
        decision = self._limiter.hit(exchange.client_address)
        exchange.add_response_hook(decision.apply_headers)
        if not decision.allowed:
            log.info("rate_limited", client=exchange.client_address)
            raise RateLimited(retry_after=decision.reset_after)
        return None


def _is_json(content_type: str) -> bool:
    return content_type == "application/json" or content_type.endswith("+json")


class BodyDecodingStage:
    name = "body"

    def __init__(self, *, max_bytes: int) -> None:
        self._max_bytes = max_bytes

    async def process(self, exchange: Exchange) -> Response | None:
        headers = exchange.headers
        declared = headers.get("content-length")
        if declared is None and "transfer-encoding" not in headers:
            return None
        if declared is not None:
            try:
                length = int(declared)
            except ValueError as e:
                raise BadRequest("Invalid Content-Length") from e
            if length > self._max_bytes:
                raise PayloadTooLarge()

        exchange.buffer(await self._read(exchange))

        content_type = exchange.content_type
        if _is_json(content_type) and exchange.body:
            try:
                exchange.state.json_body = json.loads(exchange.body)
            except ValueError as e:
                raise BadRequest("Malformed JSON body") from e
        elif content_type == "application/x-www-form-urlencoded":
            form = await exchange.request.form()
            exchange.keep_form(form)
            exchange.state.form_data = dict(form.items())
        return None

    async def _read(self, exchange: Exchange) -> bytes:
        # Counted while streaming, so a lying or missing Content-Length cannot
        # make us buffer more than the ceiling.
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await exchange.read_raw()
            if message["type"] == "http.disconnect":
                raise ClientDisconnect()
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self._max_bytes:
                raise PayloadTooLarge()
            chunks.append(chunk)
            if not message.get("more_body", False):
                return b"".join(chunks)


class UploadDecodingStage:
    name = "uploads"

    def __init__(self, *, max_files: int, max_fields: int = 1000) -> None:
        self._max_files = max_files
        self._max_fields = max_fields

    async def process(self, exchange: Exchange) -> Response | None:
        if exchange.content_type != "multipart/form-data" or exchange.body is None:
            return None
        try:
            form = await exchange.request.form(
                max_files=self._max_files, max_fields=self._max_fields
            )
        except MultiPartException as e:
            raise BadRequest(e.message) from e
        except HTTPException as e:
            # Starlette re-raises parser errors this way once an app is in scope.
            raise BadRequest(str(e.detail)) from e
        exchange.keep_form(form)

        uploads: dict[str, list[UploadFile]] = {}
        fields: dict[str, str] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                uploads.setdefault(key, []).append(value)
            else:
                fields[key] = value
        exchange.state.uploads = uploads
        exchange.state.form_data = fields
        return None


class SessionStage:
    name = "session"

    def __init__(self, store: SessionStore, cookie: CookieConfig) -> None:
        self._store = store
        self._cookie = cookie

    async def process(self, exchange: Exchange) -> Response | None:
        raw = exchange.request.cookies.get(self._cookie.name)
        session = SessionContext(self._store)
        if raw:
            session = await self._lookup(raw)
        exchange.state.session = session
        exchange.add_response_hook(lambda headers: self._write_cookie(session, headers))
        return None

    async def _lookup(self, raw: str) -> SessionContext:
        try:
            token = read_session_token(cfg=self._cookie, value=raw)
        except CookieValidationError as e:
            log.info("session_cookie_rejected", reason=str(e))
            return self._stale()
        identity = await self._store.load(token)
        if identity is None:
            return self._stale()
        return SessionContext(self._store, token=token, identity=identity)

    def _stale(self) -> SessionContext:
        # Tell the client to drop a cookie we cannot honor; no new session is created.
        session = SessionContext(self._store)
        session.cookie_action = CookieAction.clear
        return session

    def _write_cookie(self, session: SessionContext, headers: MutableHeaders) -> None:
        if session.cookie_action is CookieAction.set and session.token is not None:
            value = set_cookie_header(
                cfg=self._cookie, value=sign_session_token(cfg=self._cookie, token=session.token)
            )
            headers.append("set-cookie", value)
        elif session.cookie_action is CookieAction.clear:
            headers.append("set-cookie", clear_cookie_header(cfg=self._cookie))


# --- Module Notes -----------------------------------------------------------
# Order is declared in `techdash.pipeline.middleware.build_stages`; stages do not
# know their position.
