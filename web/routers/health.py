"""Health-related API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from core.context import AppContext
from web.deps import get_app_context

router = APIRouter(tags=["Health"])


@router.get("/healthz", include_in_schema=False)
async def readiness_check(context: AppContext = Depends(get_app_context)) -> JSONResponse:
    """Report document store, identity provider and model readiness."""
    checks = await context.readiness()
    healthy = checks["documents"]["ok"] and checks["identity"]["ok"]
    payload = {"status": "ok" if healthy else "degraded", **checks}
    status_code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=payload)


__all__ = ["router"]
