"""Advisory API schemas."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AdvisoryRequest(BaseModel):
    resumen: Optional[Dict[str, Any]] = Field(default=None, description="Business summary the model should analyse.")


class AdvisoryResponse(BaseModel):
    html: str = Field(..., description="Sanitised HTML fragment produced by the model.")


__all__ = ["AdvisoryRequest", "AdvisoryResponse"]
