"""Support tickets: user intake and admin responses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from core.errors import ConflictError, NotFoundError, ValidationError
from core.logging import get_logger
from services.document_store import TICKETS_COLLECTION, DocumentStore, ticket_path

logger = get_logger(__name__)

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"


@dataclass(frozen=True)
class SupportTicket:
    id: str
    user_id: str
    topic: str
    message: str
    status: str
    created_at: str
    response: Optional[str] = None
    responded_at: Optional[str] = None
    admin_responder_id: Optional[str] = None

    @classmethod
    def from_document(cls, ticket_id: str, data: Mapping[str, Any]) -> "SupportTicket":
        return cls(
            id=ticket_id,
            user_id=str(data.get("userId") or ""),
            topic=str(data.get("topic") or ""),
            message=str(data.get("message") or ""),
            status=str(data.get("status") or STATUS_OPEN),
            created_at=str(data.get("createdAt") or ""),
            response=data.get("response"),
            responded_at=data.get("respondedAt"),
            admin_responder_id=data.get("adminResponderId"),
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def create_ticket(documents: DocumentStore, *, user_id: str, topic: str, message: str = "") -> SupportTicket:
    topic = (topic or "").strip()
    if not topic:
        raise ValidationError("Falta el tema del ticket.", code="tickets.topic_required")
    payload = {
        "userId": user_id,
        "topic": topic,
        "message": (message or "").strip(),
        "status": STATUS_OPEN,
        "createdAt": _now_iso(),
    }
    ticket_id = await documents.add(TICKETS_COLLECTION, payload)
    logger.info("Support ticket %s opened by %s.", ticket_id, user_id)
    return SupportTicket.from_document(ticket_id, payload)


async def list_user_tickets(documents: DocumentStore, user_id: str) -> List[SupportTicket]:
    records = await documents.query(
        TICKETS_COLLECTION, "userId", "==", user_id, order_by="createdAt", descending=True
    )
    return [SupportTicket.from_document(ticket_id, data) for ticket_id, data in records]


async def list_all_tickets(documents: DocumentStore, *, status: Optional[str] = None) -> List[SupportTicket]:
    if status:
        records = await documents.query(
            TICKETS_COLLECTION, "status", "==", status, order_by="createdAt", descending=True
        )
    else:
        records = await documents.list_all(TICKETS_COLLECTION, order_by="createdAt", descending=True)
    return [SupportTicket.from_document(ticket_id, data) for ticket_id, data in records]


async def respond_ticket(
    documents: DocumentStore,
    *,
    ticket_id: str,
    admin_id: str,
    response: str,
) -> SupportTicket:
    """Attach the admin response and resolve the ticket (one-way)."""
    text = (response or "").strip()
    if not text:
        raise ValidationError("Falta la respuesta.", code="tickets.response_required")
    path = ticket_path(ticket_id)
    current = await documents.get(path)
    if current is None:
        raise NotFoundError("Ticket no encontrado.", code="tickets.not_found")
    if current.get("status") == STATUS_RESOLVED:
        raise ConflictError("El ticket ya fue respondido.", code="tickets.already_resolved")
    fields = {
        "status": STATUS_RESOLVED,
        "response": text,
        "respondedAt": _now_iso(),
        "adminResponderId": admin_id,
    }
    await documents.update(path, fields)
    logger.info("Support ticket %s resolved by %s.", ticket_id, admin_id)
    return SupportTicket.from_document(ticket_id, {**current, **fields})


__all__ = [
    "STATUS_OPEN",
    "STATUS_RESOLVED",
    "SupportTicket",
    "create_ticket",
    "list_all_tickets",
    "list_user_tickets",
    "respond_ticket",
]
