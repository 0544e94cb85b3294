"""
tests.test_route_table

Route composition table: first-registered-prefix-match, role normalization, immutability.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from conftest import make_settings
from techdash.auth.models import Role, normalize_roles
from techdash.routing.table import RouteTable, default_routes, route


def test_first_registered_prefix_wins() -> None:
    table = RouteTable.build(
        [
            route("/reports/daily", "daily", public=True),
            route("/reports", "reports", roles="manager"),
        ]
    )

    assert table.match("/reports/daily").handler_group == "daily"
    assert table.match("/reports/daily/2024").handler_group == "daily"
    assert table.match("/reports/weekly").handler_group == "reports"


def test_declaration_order_beats_specificity() -> None:
    table = RouteTable.build([route("/a", "broad"), route("/a/b", "narrow")])

    assert table.match("/a/b").handler_group == "broad"


def test_prefix_matches_on_segment_boundary() -> None:
    table = RouteTable.build([route("/jobs", "jobs")])

    assert table.match("/jobs") is not None
    assert table.match("/jobs/42") is not None
    assert table.match("/jobsite") is None


def test_root_matches_only_itself() -> None:
    table = RouteTable.build([route("/", "public", public=True)])

    assert table.match("/") is not None
    assert table.match("/anything") is None


def test_unmatched_path_returns_none() -> None:
    assert RouteTable.build([route("/jobs", "jobs")]).match("/parts") is None


def test_single_role_and_collection_normalize_to_the_same_set() -> None:
    single = route("/a", "a", roles="admin")
    listed = route("/b", "b", roles=[Role.admin])
    mixed = route("/c", "c", roles=("admin", Role.manager))

    assert single.required_roles == listed.required_roles == frozenset({Role.admin})
    assert mixed.required_roles == frozenset({Role.admin, Role.manager})
    assert normalize_roles(Role.viewer) == frozenset({Role.viewer})


def test_unknown_role_is_rejected() -> None:
    with pytest.raises(ValueError):
        route("/a", "a", roles="superuser")


def test_role_gated_route_must_require_a_session() -> None:
    with pytest.raises(ValueError):
        route("/a", "a", public=True, roles="admin")


def test_duplicate_prefix_is_rejected() -> None:
    with pytest.raises(ValueError):
        RouteTable.build([route("/a", "a"), route("/a", "b")])


def test_malformed_prefix_is_rejected() -> None:
    with pytest.raises(ValueError):
        route("jobs", "jobs")
    with pytest.raises(ValueError):
        route("/jobs/", "jobs")


def test_table_is_immutable() -> None:
    table = RouteTable.build([route("/a", "a")])

    with pytest.raises(dataclasses.FrozenInstanceError):
        table.descriptors = ()  # type: ignore[misc]
    with pytest.raises(dataclasses.FrozenInstanceError):
        table.get("/a").audited = True  # type: ignore[misc]


def test_default_table_policies(tmp_path: Path) -> None:
    table = default_routes(make_settings(tmp_path))

    for prefix in ("/", "/healthz", "/readyz", "/auth"):
        assert table.get(prefix).public
    assert not table.get("/dashboard").audited
    assert table.get("/reports").required_roles == frozenset({Role.admin, Role.manager})
    for prefix in ("/plenty", "/users", "/audit", "/monitoring", "/system"):
        assert table.get(prefix).required_roles == frozenset({Role.admin})
        assert table.get(prefix).audited
    assert table.get("/devices").rate_limit == 300
    assert table.get("/realtime").public


def test_realtime_can_require_a_session(tmp_path: Path) -> None:
    table = default_routes(make_settings(tmp_path, realtime_requires_session=True))

    assert not table.get("/realtime").public


# --- Module Notes -----------------------------------------------------------
# The table is plain data; these tests never start the app.
