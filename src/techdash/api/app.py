"""
techdash.api.app

FastAPI app factory for the technician dashboard.

Responsibilities:
- Build the FastAPI application, mount handler groups per the route table and
  install the security pipeline.
- Initialize and tear down the subsystem registry via the app lifespan.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from techdash import __version__
from techdash.api.routers import build_handler_groups
from techdash.audit.interceptor import AuditInterceptor
from techdash.audit.sinks import AuditSink, DatabaseAuditSink
from techdash.auth.sessions import SessionStore
from techdash.bootstrap import Subsystems, build_subsystems
from techdash.errors import StartupFailure
from techdash.observability.logging import get_logger
from techdash.observability.middleware import RequestContextMiddleware
from techdash.pipeline.middleware import PipelineMiddleware, build_stages
from techdash.pipeline.ratelimit import FixedWindowRateLimiter
from techdash.routing.gate import DispatchGate
from techdash.routing.table import RouteTable, default_routes
from techdash.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    subsystems: Subsystems | None = None,
    routes: RouteTable | None = None,
    handler_groups: Mapping[str, APIRouter] | None = None,
    audit_sink: AuditSink | None = None,
    rate_limit_clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    subsystems = subsystems or build_subsystems(settings)
    routes = routes or default_routes(settings)
    groups = build_handler_groups() if handler_groups is None else dict(handler_groups)
    audit = AuditInterceptor(audit_sink or DatabaseAuditSink(subsystems.database))
    registry = subsystems.registry
    deadline = settings.shutdown_deadline_seconds

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # The served entry point initializes before listening; READY subsystems are skipped.
        try:
            await registry.init_all()
        except StartupFailure:
            await registry.shutdown_all(deadline)
            raise
        app.state.started_at = time.monotonic()
        log.info("startup", env=settings.env)
        try:
            yield
        finally:
            await audit.drain(deadline)
            report = await registry.shutdown_all(deadline)
            log.info("shutdown", clean=report.clean)

    # Docs routes are not part of the route table, so they are not served.
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.subsystems = subsystems
    app.state.routes = routes
    app.state.audit = audit
    app.state.started_at = time.monotonic()

    for descriptor in routes:
        router = groups.get(descriptor.handler_group)
        if router is None:
            raise ValueError(
                f"no handler group {descriptor.handler_group!r} for prefix {descriptor.prefix!r}"
            )
        app.include_router(router, prefix="" if descriptor.prefix == "/" else descriptor.prefix)

    def limiter(max_requests: int) -> FixedWindowRateLimiter:
        return FixedWindowRateLimiter(
            max_requests=max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            clock=rate_limit_clock,
        )

    global_limiter = limiter(settings.rate_limit_max_requests)
    gate = DispatchGate(routes=routes, audit=audit, limiter_factory=limiter)
    sessions = SessionStore(subsystems.cache, ttl=settings.session_max_age_seconds)
    app.state.sessions = sessions

    async def prune_rate_limits() -> None:
        pruned = global_limiter.prune() + gate.prune()
        if pruned:
            log.info("rate_limit_windows_pruned", keys=pruned)

    subsystems.scheduler.add_job(
        "rate_limit_prune", settings.rate_limit_window_seconds, prune_rate_limits
    )

    # add_middleware prepends: the request context wraps the security pipeline.
    app.add_middleware(
        PipelineMiddleware,
        stages=build_stages(settings, sessions=sessions, limiter=global_limiter),
        dispatcher=gate,
    )
    app.add_middleware(RequestContextMiddleware)

    return app


# --- Module Notes -----------------------------------------------------------
# Keep this file small: composition stays here; request policy lives in
# `techdash.pipeline` and `techdash.routing`, business handlers in routers.
