"""Subscription plan constants shared by checkout, advisory and admin flows."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence


class SubscriptionPlan(str, Enum):
    BASIC = "Plan Básico"
    PREMIUM = "Plan Premium"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    NONE = "none"
    CANCELLED = "cancelled"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class AccountRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


SUPPORTED_PLANS: Sequence[SubscriptionPlan] = tuple(SubscriptionPlan)
PREMIUM_PLAN = SubscriptionPlan.PREMIUM


def resolve_plan(value: Optional[str]) -> Optional[SubscriptionPlan]:
    """Return the recognised plan matching ``value`` or ``None``."""
    if not value:
        return None
    candidate = value.strip()
    for plan in SUPPORTED_PLANS:
        if plan.value == candidate:
            return plan
    return None


__all__ = [
    "AccountRole",
    "PREMIUM_PLAN",
    "SUPPORTED_PLANS",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "resolve_plan",
]
