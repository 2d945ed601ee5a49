"""
Service-level routes.

Route prefix: /api
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/ping")
async def ping() -> Dict[str, Any]:
    return {"ok": True}
