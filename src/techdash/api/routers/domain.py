"""
techdash.api.routers.domain

Handler groups for the technician work areas (devices, jobs, parts, ...).

Responsibilities:
- Accept submissions decoded by the pipeline (JSON, form fields, uploads).
- Keep the most recent submissions per group in the cache.
- Publish `<group>.submitted` on the event bus for realtime clients.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from starlette.status import HTTP_202_ACCEPTED

from techdash.api.deps import subsystems_dep
from techdash.auth.deps import current_identity
from techdash.auth.models import SessionIdentity
from techdash.bootstrap import Subsystems
from techdash.errors import BadRequest, NotFound

DOMAIN_GROUPS = (
    "devices",
    "jobs",
    "parts",
    "qc",
    "reports",
    "technicians",
    "workflow",
    "plenty",
    "users",
)

RECENT_LIMIT = 100


def _submission_payload(request: Request) -> dict[str, Any]:
    state = request.state
    json_body = getattr(state, "json_body", None)
    if json_body is not None and not isinstance(json_body, dict):
        raise BadRequest("Expected a JSON object")
    fields: dict[str, Any] = dict(json_body or getattr(state, "form_data", None) or {})
    uploads = getattr(state, "uploads", None) or {}
    files = [
        {"field": name, "filename": f.filename, "size": f.size, "content_type": f.content_type}
        for name, items in uploads.items()
        for f in items
    ]
    return {"fields": fields, "files": files}


def domain_router(group: str) -> APIRouter:
    router = APIRouter(tags=[group])
    key = f"{group}:recent"

    @router.get("")
    async def list_submissions(
        subsystems: Subsystems = Depends(subsystems_dep),
    ) -> dict[str, Any]:
        items = subsystems.cache.get(key, [])
        return {"group": group, "count": len(items), "items": items}

    @router.get("/{submission_id}")
    async def get_submission(
        submission_id: str,
        subsystems: Subsystems = Depends(subsystems_dep),
    ) -> dict[str, Any]:
        for item in subsystems.cache.get(key, []):
            if item["id"] == submission_id:
                return item
        raise NotFound(f"No {group} submission {submission_id}")

    @router.post("", status_code=HTTP_202_ACCEPTED)
    async def submit(
        request: Request,
        identity: SessionIdentity = Depends(current_identity),
        subsystems: Subsystems = Depends(subsystems_dep),
    ) -> dict[str, Any]:
        submission = {
            "id": str(uuid.uuid4()),
            "group": group,
            "submitted_by": identity.user_id,
            "submitted_at": datetime.now(tz=UTC).isoformat(),
            **_submission_payload(request),
        }
        # Replace rather than mutate: cached values are shared by reference.
        recent = [submission, *subsystems.cache.get(key, [])][:RECENT_LIMIT]
        subsystems.cache.set(key, recent)
        subsystems.event_bus.publish(
            f"{group}.submitted", {"id": submission["id"], "submitted_by": identity.user_id}
        )
        return submission

    return router


# --- Module Notes -----------------------------------------------------------
# Business rules per work area are not modelled here; these groups exercise the
# request backbone end to end (decoding, identity, RBAC, audit, realtime).
