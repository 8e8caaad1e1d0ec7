"""Health check route."""

from __future__ import annotations

from fastapi import APIRouter

from bundlesupport import __version__

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}
