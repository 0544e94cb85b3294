"""
techdash.routing.table

Route composition table.

Responsibilities:
- Declare, per path prefix: handler group, session requirement, required
  roles, audit policy and optional per-prefix rate limit.
- Resolve request paths with first-registered-prefix-match.
- Stay immutable after construction so it can be read concurrently.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from techdash.auth.models import Role, RoleRequirement, normalize_roles
from techdash.settings import Settings


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    prefix: str
    handler_group: str
    requires_session: bool = True
    required_roles: frozenset[Role] | None = None
    audited: bool = False
    audit_label: str | None = None
    exact: bool = False
    rate_limit: int | None = None

    def __post_init__(self) -> None:
        if not self.prefix.startswith("/"):
            raise ValueError(f"route prefix must start with '/': {self.prefix!r}")
        if self.prefix != "/" and self.prefix.endswith("/"):
            raise ValueError(f"route prefix must not end with '/': {self.prefix!r}")
        if self.required_roles is not None and not self.requires_session:
            raise ValueError(f"role-gated prefix {self.prefix!r} must require a session")

    @property
    def public(self) -> bool:
        return not self.requires_session

    def matches(self, path: str) -> bool:
        if self.exact or self.prefix == "/":
            return path == self.prefix
        # Segment boundary: "/jobs" matches "/jobs" and "/jobs/..", never "/jobsx".
        return path == self.prefix or path.startswith(self.prefix + "/")


def route(
    prefix: str,
    handler_group: str,
    *,
    public: bool = False,
    roles: RoleRequirement | None = None,
    audited: bool = False,
    audit_label: str | None = None,
    exact: bool = False,
    rate_limit: int | None = None,
) -> RouteDescriptor:
    """Build a descriptor, normalizing a single role or a role collection to a set."""

    return RouteDescriptor(
        prefix=prefix,
        handler_group=handler_group,
        requires_session=not public,
        required_roles=None if roles is None else normalize_roles(roles),
        audited=audited,
        audit_label=audit_label,
        exact=exact,
        rate_limit=rate_limit,
    )


@dataclass(frozen=True, slots=True)
class RouteTable:
    descriptors: tuple[RouteDescriptor, ...] = field(default=())

    @classmethod
    def build(cls, descriptors: Iterable[RouteDescriptor]) -> RouteTable:
        items = tuple(descriptors)
        seen: set[str] = set()
        for d in items:
            if d.prefix in seen:
                raise ValueError(f"duplicate route prefix {d.prefix!r}")
            seen.add(d.prefix)
        return cls(descriptors=items)

    def match(self, path: str) -> RouteDescriptor | None:
        # Declaration order is precedence: the first matching prefix wins.
        for descriptor in self.descriptors:
            if descriptor.matches(path):
                return descriptor
        return None

    def __iter__(self) -> Iterator[RouteDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def get(self, prefix: str) -> RouteDescriptor:
        for descriptor in self.descriptors:
            if descriptor.prefix == prefix:
                return descriptor
        raise KeyError(prefix)

    def handler_groups(self) -> set[str]:
        return {d.handler_group for d in self.descriptors}


MANAGEMENT = (Role.admin, Role.manager)


def default_routes(settings: Settings) -> RouteTable:
    return RouteTable.build(
        [
            # Public
            route("/", "public", public=True, exact=True),
            route("/healthz", "liveness", public=True),
            route("/readyz", "readiness", public=True),
            route("/auth", "auth", public=True),
            # Authenticated
            route("/dashboard", "dashboard"),
            route(
                "/devices",
                "devices",
                audited=True,
                rate_limit=settings.devices_rate_limit_max_requests,
            ),
            route("/jobs", "jobs", audited=True),
            route("/parts", "parts", audited=True),
            route("/qc", "qc", audited=True),
            route("/reports", "reports", roles=MANAGEMENT, audited=True),
            route("/technicians", "technicians", audited=True),
            route("/workflow", "workflow", audited=True),
            route("/realtime", "realtime", public=not settings.realtime_requires_session),
            # Admin only
            route("/plenty", "plenty", roles=Role.admin, audited=True),
            route("/users", "users", roles=Role.admin, audited=True),
            route("/audit", "audit", roles=Role.admin, audited=True),
            route("/monitoring", "monitoring", roles=Role.admin, audited=True),
            route("/system", "system", roles=Role.admin, audited=True),
        ]
    )


# --- Module Notes -----------------------------------------------------------
# Put specific prefixes before broader ones; matching does not look for the
# longest prefix.
