"""Premium AI advisory endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from core.context import AppContext
from schemas.api.advisory import AdvisoryRequest, AdvisoryResponse
from web.deps import get_app_context, get_user_id

router = APIRouter(prefix="/api", tags=["Advisory"])


@router.post("/consultar-ia", response_model=AdvisoryResponse, summary="Genera recomendaciones para cuentas Premium.")
async def consult_advisor(
    payload: AdvisoryRequest,
    user_id: Optional[str] = Depends(get_user_id),
    context: AppContext = Depends(get_app_context),
) -> AdvisoryResponse:
    html = await context.advisory_service().advise(user_id, payload.resumen)
    return AdvisoryResponse(html=html)


__all__ = ["router"]
