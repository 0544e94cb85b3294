"""
techdash.pipeline.middleware

Single dispatch loop for the request pipeline.

Responsibilities:
- Run the declared stages in order for every HTTP request, stopping at the
  first terminal response.
- Hand surviving requests to the dispatch gate (routing, identity, RBAC, audit).
- Convert every request error into its terminal response in one place, and
  every uncaught handler failure into a generic 500.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from techdash.auth.cookies import CookieConfig
from techdash.auth.sessions import SessionStore
from techdash.errors import HandlerError, RequestError, error_response
from techdash.observability.logging import get_logger
from techdash.pipeline.exchange import Exchange
from techdash.pipeline.ratelimit import FixedWindowRateLimiter
from techdash.pipeline.stages import (
    BodyDecodingStage,
    OriginPolicyStage,
    RateLimitStage,
    SecurityHeadersStage,
    SessionStage,
    Stage,
    UploadDecodingStage,
)
from techdash.settings import Settings

log = get_logger(__name__)


class Dispatcher(Protocol):
    async def dispatch(self, exchange: Exchange, app: ASGIApp, send: Send) -> None: ...


def build_stages(
    settings: Settings,
    *,
    sessions: SessionStore,
    limiter: FixedWindowRateLimiter,
) -> tuple[Stage, ...]:
    # The order of this tuple is the order every request sees.
    return (
        SecurityHeadersStage(),
        OriginPolicyStage(settings.allowed_origins),
        RateLimitStage(limiter),
        BodyDecodingStage(max_bytes=settings.max_body_bytes),
        UploadDecodingStage(max_files=settings.max_upload_files),
        SessionStage(sessions, CookieConfig.from_settings(settings)),
    )


class PipelineMiddleware:
    def __init__(self, app: ASGIApp, *, stages: Sequence[Stage], dispatcher: Dispatcher) -> None:
        self.app = app
        self.stages = tuple(stages)
        self.dispatcher = dispatcher

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        exchange = Exchange(scope, receive)
        response_started = False

        async def send_with_hooks(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                exchange.apply_response_hooks(message)
            await send(message)

        try:
            error = await self._run(exchange, send_with_hooks)
            if error is None:
                return
            if response_started:
                # Too late for an error page; the connection is closed by the server.
                log.warning("error_after_response_started", error=error.code)
                return
            response = error_response(error, exchange.request)
            await response(scope, exchange.receive, send_with_hooks)
        finally:
            await exchange.close()

    async def _run(self, exchange: Exchange, send: Send) -> RequestError | None:
        try:
            for stage in self.stages:
                response = await stage.process(exchange)
                if response is not None:
                    await response(exchange.scope, exchange.receive, send)
                    return None
            await self.dispatcher.dispatch(exchange, self.app, send)
        except ClientDisconnect:
            # Cooperative cancellation: nobody is listening for a response.
            log.info("client_disconnected")
            return None
        except RequestError as e:
            return e
        except Exception:
            log.exception("handler_error")
            return HandlerError()
        return None


# --- Module Notes -----------------------------------------------------------
# Non-HTTP scopes (lifespan) pass straight through to the application.
