"""
techdash.api.routers.public

Welcome endpoint for `/`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from techdash.api.deps import view_context

router = APIRouter(tags=["public"])


@router.get("/")
async def welcome(ctx: dict[str, Any] = Depends(view_context)) -> dict[str, Any]:
    return {**ctx, "message": f"Welcome to {ctx['app_name']}", "login": "/auth/login"}
