"""Admin endpoints: account erasure, deferred deletion and ticket handling."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fastapi import APIRouter, Depends, Query

from core.context import AppContext
from core.errors import ValidationError
from schemas.api.admin import (
    AccountDeletionResponse,
    AdminSuccessResponse,
    DeletionScheduleRequest,
    DeletionScheduleResponse,
)
from schemas.api.tickets import TicketListResponse, TicketRespondRequest, TicketResponse
from services import ticket_service
from services.accounts.deletion import cancel_account_deletion, delete_account, schedule_account_deletion
from web.deps import get_app_context, require_admin

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.delete("/users/{uid}", response_model=AccountDeletionResponse, summary="Elimina una cuenta y todos sus datos.")
async def delete_user(
    uid: str,
    admin: Mapping[str, Any] = Depends(require_admin),
    context: AppContext = Depends(get_app_context),
) -> AccountDeletionResponse:
    report = await delete_account(
        uid,
        documents=context.require_documents(),
        identity=context.require_identity(),
        batch_size=context.settings.purge_batch_size,
        trigger="admin",
    )
    return AccountDeletionResponse(identityDeleted=report.identity_deleted, purged=report.purged)


@router.post(
    "/users/{uid}/programar-eliminacion",
    response_model=DeletionScheduleResponse,
    summary="Programa la eliminación diferida de una cuenta.",
)
async def schedule_user_deletion(
    uid: str,
    payload: DeletionScheduleRequest,
    admin: Mapping[str, Any] = Depends(require_admin),
    context: AppContext = Depends(get_app_context),
) -> DeletionScheduleResponse:
    if payload.dias is None:
        raise ValidationError("Faltan datos", code="accounts.days_required")
    scheduled_at = await schedule_account_deletion(uid, documents=context.require_documents(), days=payload.dias)
    return DeletionScheduleResponse(deletionScheduledAt=scheduled_at)


@router.delete(
    "/users/{uid}/programar-eliminacion",
    response_model=AdminSuccessResponse,
    summary="Cancela una eliminación programada.",
)
async def cancel_user_deletion(
    uid: str,
    admin: Mapping[str, Any] = Depends(require_admin),
    context: AppContext = Depends(get_app_context),
) -> AdminSuccessResponse:
    await cancel_account_deletion(uid, documents=context.require_documents())
    return AdminSuccessResponse()


@router.get("/tickets", response_model=TicketListResponse, summary="Lista todos los tickets de soporte.")
async def list_tickets(
    status: Optional[str] = Query(default=None, description="Filter by ticket status."),
    admin: Mapping[str, Any] = Depends(require_admin),
    context: AppContext = Depends(get_app_context),
) -> TicketListResponse:
    tickets = await ticket_service.list_all_tickets(context.require_documents(), status=status)
    return TicketListResponse(tickets=[TicketResponse.from_ticket(ticket) for ticket in tickets])


@router.post("/tickets/{ticket_id}/responder", response_model=TicketResponse, summary="Responde y cierra un ticket.")
async def respond_ticket(
    ticket_id: str,
    payload: TicketRespondRequest,
    admin: Mapping[str, Any] = Depends(require_admin),
    context: AppContext = Depends(get_app_context),
) -> TicketResponse:
    ticket = await ticket_service.respond_ticket(
        context.require_documents(),
        ticket_id=ticket_id,
        admin_id=admin["uid"],
        response=payload.respuesta or "",
    )
    return TicketResponse.from_ticket(ticket)


__all__ = ["router"]
