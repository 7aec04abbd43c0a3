"""Support ticket endpoints for signed-in users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from core.context import AppContext
from schemas.api.tickets import TicketCreateRequest, TicketListResponse, TicketResponse
from services import ticket_service
from web.deps import get_app_context, require_user_id

router = APIRouter(prefix="/api", tags=["Support"])


@router.post(
    "/crear-ticket",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Abre un ticket de soporte.",
)
async def create_ticket(
    payload: TicketCreateRequest,
    user_id: str = Depends(require_user_id),
    context: AppContext = Depends(get_app_context),
) -> TicketResponse:
    ticket = await ticket_service.create_ticket(
        context.require_documents(),
        user_id=user_id,
        topic=payload.topic or "",
        message=payload.message or "",
    )
    return TicketResponse.from_ticket(ticket)


@router.get("/mis-tickets", response_model=TicketListResponse, summary="Lista los tickets del usuario.")
async def list_my_tickets(
    user_id: str = Depends(require_user_id),
    context: AppContext = Depends(get_app_context),
) -> TicketListResponse:
    tickets = await ticket_service.list_user_tickets(context.require_documents(), user_id)
    return TicketListResponse(tickets=[TicketResponse.from_ticket(ticket) for ticket in tickets])


__all__ = ["router"]
