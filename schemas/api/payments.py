"""Payment API schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class CheckoutCreateRequest(BaseModel):
    monto: Optional[int] = Field(default=None, description="Amount to charge, in whole pesos.")
    plan: Optional[str] = Field(default=None, description="Plan being purchased (Plan Básico or Plan Premium).")
    userId: Optional[str] = Field(default=None, description="Account that receives the plan once payment is authorised.")


class CheckoutCreateResponse(BaseModel):
    url: str = Field(..., description="Webpay form URL the browser must post the token to.")
    token: str = Field(..., description="Webpay session token (token_ws).")


__all__ = ["CheckoutCreateRequest", "CheckoutCreateResponse"]
