"""Role checks against the stored account profile."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from core.errors import AuthorizationError, ForbiddenError
from core.plan_constants import AccountRole
from services.document_store import DocumentStore, user_path


async def ensure_admin(documents: DocumentStore, user_id: Optional[str]) -> Mapping[str, Any]:
    """Return the caller's account when it carries the admin role."""
    if not user_id or not user_id.strip():
        raise AuthorizationError("No autorizado", code="auth.required")
    account = await documents.get(user_path(user_id.strip()))
    if account is None or account.get("role") != AccountRole.ADMIN.value:
        raise ForbiddenError("Solo administradores.", code="auth.admin_required")
    return account


__all__ = ["ensure_admin"]
