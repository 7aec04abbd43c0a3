"""Webpay checkout endpoints: session creation and the gateway return path."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from core.context import AppContext
from core.logging import get_logger
from schemas.api.payments import CheckoutCreateRequest, CheckoutCreateResponse
from web.deps import get_app_context

router = APIRouter(tags=["Payments"])

logger = get_logger(__name__)


@router.post(
    "/crear-transaccion",
    response_model=CheckoutCreateResponse,
    summary="Registra la intención de compra y abre una sesión Webpay.",
)
async def create_transaction(
    payload: CheckoutCreateRequest,
    context: AppContext = Depends(get_app_context),
) -> CheckoutCreateResponse:
    session = await context.checkout_service().start_checkout(
        amount=payload.monto,
        plan=payload.plan,
        user_id=payload.userId,
    )
    return CheckoutCreateResponse(url=session.url, token=session.token)


@router.get("/retorno", summary="Recibe el retorno de Webpay y redirige al comprobante.")
async def webpay_return(
    token_ws: Optional[str] = Query(default=None),
    tbk_token: Optional[str] = Query(default=None, alias="TBK_TOKEN"),
    context: AppContext = Depends(get_app_context),
) -> RedirectResponse:
    result = await context.checkout_service().complete_checkout(token_ws=token_ws, tbk_token=tbk_token)
    target = result.redirect_url(context.settings.receipt_page_url)
    logger.info("Webpay return resolved to %s.", result.outcome.value)
    return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)


__all__ = ["router"]
