"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fastapi import Depends, Header, Request

from core.context import AppContext
from core.errors import AuthorizationError, UpstreamUnavailable
from services.accounts.access import ensure_admin


def get_app_context(request: Request) -> AppContext:
    """Fetch the context built during application startup."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise UpstreamUnavailable("Servicio iniciándose. Intenta luego.", code="app.not_ready")
    return context


def get_user_id(user_id: Optional[str] = Header(default=None, alias="user-id")) -> Optional[str]:
    if user_id is None:
        return None
    return user_id.strip() or None


def require_user_id(user_id: Optional[str] = Depends(get_user_id)) -> str:
    if not user_id:
        raise AuthorizationError("No autorizado", code="auth.required")
    return user_id


async def require_admin(
    user_id: str = Depends(require_user_id),
    context: AppContext = Depends(get_app_context),
) -> Mapping[str, Any]:
    """Resolve the caller's account and insist on the admin role."""
    account = await ensure_admin(context.require_documents(), user_id)
    return {**account, "uid": user_id}


__all__ = ["get_app_context", "get_user_id", "require_admin", "require_user_id"]
