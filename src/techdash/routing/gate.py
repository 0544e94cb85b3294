"""
techdash.routing.gate

Dispatch gate between the pipeline and the handlers.

Responsibilities:
- Resolve the request path against the route table (unmatched -> 404).
- Resolve identity for session-bound prefixes.
- Enforce per-prefix rate limits where the table declares one, then apply the
  RBAC gate.
- Wrap audited prefixes so each request yields exactly one audit event.
"""

from __future__ import annotations

from collections.abc import Callable

from starlette.types import ASGIApp, Message, Send

from techdash.audit.events import ANONYMOUS, AuditEvent, AuditOutcome
from techdash.audit.interceptor import AuditInterceptor
from techdash.auth.gate import authorize
from techdash.auth.identity import resolve_identity
from techdash.auth.models import SessionIdentity
from techdash.errors import NotFound, RateLimited, RequestError, Unauthenticated
from techdash.pipeline.exchange import Exchange
from techdash.pipeline.ratelimit import FixedWindowRateLimiter
from techdash.routing.table import RouteDescriptor, RouteTable


class DispatchGate:
    def __init__(
        self,
        *,
        routes: RouteTable,
        audit: AuditInterceptor,
        limiter_factory: Callable[[int], FixedWindowRateLimiter],
    ) -> None:
        self._routes = routes
        self._audit = audit
        # One limiter per prefix that declares its own limit.
        self._prefix_limiters = {
            d.prefix: limiter_factory(d.rate_limit) for d in routes if d.rate_limit is not None
        }

    def prune(self) -> int:
        return sum(limiter.prune() for limiter in self._prefix_limiters.values())

    async def dispatch(self, exchange: Exchange, app: ASGIApp, send: Send) -> None:
        descriptor = self._routes.match(exchange.path)
        if descriptor is None:
            raise NotFound()
        exchange.state.route = descriptor

        # Identity first: requests without a session never spend a prefix budget.
        identity = self._identify(exchange, descriptor)

        limiter = self._prefix_limiters.get(descriptor.prefix)
        if limiter is not None:
            decision = limiter.hit(exchange.client_address)
            exchange.add_response_hook(decision.apply_headers)
            if not decision.allowed:
                raise RateLimited(retry_after=decision.reset_after)

        if not descriptor.audited:
            if descriptor.required_roles is not None:
                authorize(descriptor.required_roles, identity)
            await app(exchange.scope, exchange.receive, send)
            return

        await self._audited(exchange, descriptor, identity, app, send)

    def _identify(self, exchange: Exchange, descriptor: RouteDescriptor) -> SessionIdentity | None:
        session = getattr(exchange.state, "session", None)
        if descriptor.public:
            # Public routes never fail on identity; a valid session is still visible.
            try:
                identity = resolve_identity(session)
            except Unauthenticated:
                return None
        else:
            identity = resolve_identity(session)
        exchange.state.identity = identity
        return identity

    async def _audited(
        self,
        exchange: Exchange,
        descriptor: RouteDescriptor,
        identity: SessionIdentity | None,
        app: ASGIApp,
        send: Send,
    ) -> None:
        status_code: int | None = None

        async def capture_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        # Anything that escapes without a status (exception, cancellation) is an error.
        outcome = AuditOutcome.error
        try:
            if descriptor.required_roles is not None:
                authorize(descriptor.required_roles, identity)
            await app(exchange.scope, exchange.receive, capture_status)
            if status_code is not None:
                outcome = AuditOutcome.from_status(status_code)
        except RequestError as e:
            outcome = AuditOutcome.from_status(e.status_code)
            raise
        finally:
            self._audit.record(
                AuditEvent(
                    actor_id=identity.user_id if identity is not None else ANONYMOUS,
                    action=descriptor.audit_label or f"{exchange.method} {exchange.path}",
                    path_prefix=descriptor.prefix,
                    outcome=outcome,
                )
            )


# --- Module Notes -----------------------------------------------------------
# Unauthenticated requests are rejected before the audit wrapper, so they never
# produce audit events; role refusals on audited prefixes are recorded as denied.
