"""Support ticket schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from services.ticket_service import SupportTicket


class TicketCreateRequest(BaseModel):
    topic: Optional[str] = Field(default=None, description="Short subject chosen by the user.")
    message: Optional[str] = Field(default=None, description="Free-form description of the problem.")


class TicketRespondRequest(BaseModel):
    respuesta: Optional[str] = Field(default=None, description="Admin response shown to the user.")


class TicketResponse(BaseModel):
    id: str
    userId: str
    topic: str
    message: str
    status: str
    createdAt: str
    response: Optional[str] = None
    respondedAt: Optional[str] = None
    adminResponderId: Optional[str] = None

    @classmethod
    def from_ticket(cls, ticket: SupportTicket) -> "TicketResponse":
        return cls(
            id=ticket.id,
            userId=ticket.user_id,
            topic=ticket.topic,
            message=ticket.message,
            status=ticket.status,
            createdAt=ticket.created_at,
            response=ticket.response,
            respondedAt=ticket.responded_at,
            adminResponderId=ticket.admin_responder_id,
        )


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]


__all__ = [
    "TicketCreateRequest",
    "TicketListResponse",
    "TicketRespondRequest",
    "TicketResponse",
]
