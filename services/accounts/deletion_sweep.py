"""Hourly sweep that executes deferred account deletions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from core.errors import ServiceError
from core.logging import get_logger
from core.settings import MAX_PURGE_BATCH_SIZE
from services.accounts.deletion import delete_account
from services.document_store import USERS_COLLECTION, DocumentStore
from services.identity_provider import IdentityProvider

logger = get_logger(__name__)


@dataclass
class SweepStats:
    due: int = 0
    deleted: int = 0
    failed: int = 0
    skipped: bool = False

    def as_dict(self) -> Dict[str, int | bool]:
        return {"due": self.due, "deleted": self.deleted, "failed": self.failed, "skipped": self.skipped}


class DeletionSweeper:
    """Runs ``run_once`` every ``interval`` seconds as a background task."""

    def __init__(
        self,
        documents: DocumentStore,
        identity: IdentityProvider,
        *,
        interval: float = 3600.0,
        batch_size: int = MAX_PURGE_BATCH_SIZE,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._documents = documents
        self._identity = identity
        self._interval = interval
        self._batch_size = batch_size
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepStats:
        stats = SweepStats()
        now = self._clock()
        try:
            due = await self._documents.query(USERS_COLLECTION, "deletionScheduledAt", "<=", now)
        except Exception as exc:
            # Store outages skip this cycle; the next tick retries.
            logger.warning("Deletion sweep skipped: could not query due accounts: %s", exc)
            stats.skipped = True
            return stats

        stats.due = len(due)
        for uid, _account in due:
            try:
                await delete_account(
                    uid,
                    documents=self._documents,
                    identity=self._identity,
                    batch_size=self._batch_size,
                    trigger="sweep",
                )
                stats.deleted += 1
            except ServiceError as exc:
                stats.failed += 1
                logger.error("Deletion sweep failed for %s (%s): %s", uid, exc.kind, exc.message)
            except Exception:
                stats.failed += 1
                logger.exception("Deletion sweep failed for %s.", uid)
        if stats.due:
            logger.info("Deletion sweep finished: %s", stats.as_dict())
        return stats

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:  # pragma: no cover - run_once already guards per account
                logger.exception("Deletion sweep cycle crashed; retrying on next tick.")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="account-deletion-sweep")
        logger.info("Account deletion sweep started (interval=%ss).", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Account deletion sweep stopped.")


__all__ = ["DeletionSweeper", "SweepStats"]
