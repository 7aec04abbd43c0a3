"""Schemas for admin account management APIs."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class AdminSuccessResponse(BaseModel):
    success: bool = True


class AccountDeletionResponse(AdminSuccessResponse):
    identityDeleted: bool
    purged: Dict[str, int] = Field(default_factory=dict, description="Documents removed per sub-collection.")


class DeletionScheduleRequest(BaseModel):
    dias: Optional[int] = Field(default=None, description="Days from now until the account is deleted.")


class DeletionScheduleResponse(AdminSuccessResponse):
    deletionScheduledAt: Optional[datetime] = None


__all__ = [
    "AccountDeletionResponse",
    "AdminSuccessResponse",
    "DeletionScheduleRequest",
    "DeletionScheduleResponse",
]
