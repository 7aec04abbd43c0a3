"""Account erasure and deferred-deletion scheduling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from core.errors import NotFoundError, ValidationError
from core.logging import get_logger
from core.settings import MAX_PURGE_BATCH_SIZE
from services.accounts.collection_purge import purge_collection
from services.commerce_metrics import record_account_deletion, record_purged_documents
from services.document_store import (
    TRANSACTIONS_SUBCOLLECTION,
    DocumentStore,
    business_data_path,
    user_path,
)
from services.identity_provider import IdentityProvider

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountDeletionReport:
    uid: str
    identity_deleted: bool
    purged: Dict[str, int] = field(default_factory=dict)

    @property
    def purged_total(self) -> int:
        return sum(self.purged.values())


async def delete_account(
    uid: str,
    *,
    documents: DocumentStore,
    identity: IdentityProvider,
    batch_size: int = MAX_PURGE_BATCH_SIZE,
    trigger: str = "admin",
) -> AccountDeletionReport:
    """Erase ``uid``: identity, nested business data, then the account documents.

    Every step treats "already gone" as success so the whole operation can be
    re-run (for example by the sweep after a direct admin call). Identity
    failures other than absence abort before any data is touched.
    """
    if not uid or not uid.strip():
        raise ValidationError("Falta el identificador de usuario.", code="accounts.missing_uid")
    uid = uid.strip()
    try:
        identity_deleted = await identity.delete_user(uid)

        parent = business_data_path(uid)
        collections = set(await documents.list_subcollections(parent))
        collections.add(TRANSACTIONS_SUBCOLLECTION)
        purged: Dict[str, int] = {}
        for name in sorted(collections):
            purged[name] = await purge_collection(documents, f"{parent}/{name}", batch_size)
            record_purged_documents(purged[name])

        await documents.delete(parent)
        await documents.delete(user_path(uid))
    except Exception:
        record_account_deletion(trigger, "failed")
        raise

    record_account_deletion(trigger, "deleted")
    report = AccountDeletionReport(uid=uid, identity_deleted=identity_deleted, purged=purged)
    logger.info(
        "Account %s deleted (identity_deleted=%s, purged=%d, trigger=%s).",
        uid,
        identity_deleted,
        report.purged_total,
        trigger,
    )
    return report


async def schedule_account_deletion(
    uid: str,
    *,
    documents: DocumentStore,
    days: int,
    now: Optional[datetime] = None,
) -> datetime:
    """Mark ``uid`` for deletion ``days`` from now; the sweep performs it."""
    if days < 0:
        raise ValidationError("Los días deben ser cero o más.", code="accounts.invalid_days")
    scheduled_at = (now or datetime.now(timezone.utc)) + timedelta(days=days)
    try:
        await documents.update(user_path(uid), {"deletionScheduledAt": scheduled_at})
    except NotFoundError as exc:
        raise NotFoundError("Usuario no encontrado.", code="accounts.not_found") from exc
    logger.info("Account %s scheduled for deletion at %s.", uid, scheduled_at.isoformat())
    return scheduled_at


async def cancel_account_deletion(uid: str, *, documents: DocumentStore) -> None:
    try:
        await documents.update(user_path(uid), {"deletionScheduledAt": None})
    except NotFoundError as exc:
        raise NotFoundError("Usuario no encontrado.", code="accounts.not_found") from exc
    logger.info("Scheduled deletion cancelled for account %s.", uid)


__all__ = [
    "AccountDeletionReport",
    "cancel_account_deletion",
    "delete_account",
    "schedule_account_deletion",
]
