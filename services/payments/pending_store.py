"""Pending checkout intents keyed by Webpay session id.

An intent is recorded when a checkout starts and consumed exactly once when
the gateway redirects back. Entries that are never consumed (abandoned
checkouts) are garbage collected after ``ttl`` on any subsequent access.
"""

from __future__ import annotations

import abc
import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from starlette.concurrency import run_in_threadpool

from core.logging import get_logger
from services.json_state_store import JsonStateStore

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingTransaction:
    session_id: str
    plan: str
    amount: int
    user_id: str
    created_at: str

    @classmethod
    def from_mapping(cls, session_id: str, payload: Mapping[str, Any]) -> Optional["PendingTransaction"]:
        try:
            amount = int(payload.get("amount"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        plan = str(payload.get("plan") or "").strip()
        user_id = str(payload.get("user_id") or "").strip()
        created_at = str(payload.get("created_at") or "").strip()
        if not created_at:
            return None
        return cls(session_id=session_id, plan=plan, amount=amount, user_id=user_id, created_at=created_at)

    def created(self) -> Optional[datetime]:
        try:
            value = datetime.fromisoformat(self.created_at)
        except ValueError:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        created = self.created()
        return created is None or created < now - ttl


class PendingTransactionStore(abc.ABC):
    """Keyed store of checkout intents; safe for interleaved checkout flows."""

    def __init__(self, *, ttl: timedelta = DEFAULT_TTL, clock: Clock = _utcnow) -> None:
        self._ttl = ttl
        self._clock = clock
        self._lock = asyncio.Lock()

    @abc.abstractmethod
    async def _read(self) -> Dict[str, Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def _write(self, entries: Mapping[str, Mapping[str, Any]]) -> None:
        ...

    async def put(self, session_id: str, *, plan: str, amount: int, user_id: str) -> PendingTransaction:
        """Record the intent for ``session_id``, overwriting any earlier entry."""
        intent = PendingTransaction(
            session_id=session_id,
            plan=plan,
            amount=int(amount),
            user_id=user_id,
            created_at=self._clock().isoformat(),
        )
        async with self._lock:
            entries = await self._read()
            if session_id in entries:
                logger.warning("Overwriting pending transaction for session %s.", session_id)
            entries[session_id] = _serialise(intent)
            await self._write(entries)
        return intent

    async def take_and_expire(self, session_id: Optional[str]) -> Optional[PendingTransaction]:
        """Remove and return the intent for ``session_id``; prune expired entries.

        Returns ``None`` when nothing (or only an expired entry) is stored.
        """
        async with self._lock:
            entries = await self._read()
            raw = entries.pop(session_id, None) if session_id else None
            expired = self._expired_keys(entries)
            for key in expired:
                entries.pop(key, None)
            if raw is not None or expired:
                await self._write(entries)
        if expired:
            logger.info("Pruned %d expired pending transaction(s).", len(expired))
        if raw is None:
            logger.info("No pending transaction stored for session %s.", session_id)
            return None
        intent = PendingTransaction.from_mapping(session_id or "", raw)
        if intent is None or intent.is_expired(self._clock(), self._ttl):
            logger.warning("Pending transaction for session %s was malformed or expired.", session_id)
            return None
        return intent

    async def sweep(self) -> int:
        """Drop expired entries without consuming any session; returns the count removed."""
        async with self._lock:
            entries = await self._read()
            expired = self._expired_keys(entries)
            if not expired:
                return 0
            for key in expired:
                entries.pop(key, None)
            await self._write(entries)
        logger.info("Swept %d expired pending transaction(s).", len(expired))
        return len(expired)

    async def snapshot(self) -> Dict[str, PendingTransaction]:
        async with self._lock:
            entries = await self._read()
        results: Dict[str, PendingTransaction] = {}
        for key, payload in entries.items():
            intent = PendingTransaction.from_mapping(key, payload)
            if intent is not None:
                results[key] = intent
        return results

    def _expired_keys(self, entries: Mapping[str, Mapping[str, Any]]) -> List[str]:
        now = self._clock()
        expired: List[str] = []
        for key, payload in entries.items():
            intent = PendingTransaction.from_mapping(key, payload)
            if intent is None or intent.is_expired(now, self._ttl):
                expired.append(key)
        return expired


def _serialise(intent: PendingTransaction) -> Dict[str, Any]:
    payload = asdict(intent)
    payload.pop("session_id", None)
    return payload


class InMemoryPendingStore(PendingTransactionStore):
    def __init__(self, *, ttl: timedelta = DEFAULT_TTL, clock: Clock = _utcnow) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._entries: Dict[str, Dict[str, Any]] = {}

    async def _read(self) -> Dict[str, Dict[str, Any]]:
        return {key: dict(value) for key, value in self._entries.items()}

    async def _write(self, entries: Mapping[str, Mapping[str, Any]]) -> None:
        self._entries = {key: dict(value) for key, value in entries.items()}


class JsonFilePendingStore(PendingTransactionStore):
    """File-backed store; survives restarts of the API process."""

    def __init__(self, path: Path, *, ttl: timedelta = DEFAULT_TTL, clock: Clock = _utcnow) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._state = JsonStateStore(path, "transactions", logger=logger)

    @property
    def path(self) -> Path:
        return self._state.path

    async def _read(self) -> Dict[str, Dict[str, Any]]:
        return await run_in_threadpool(self._state.load)

    async def _write(self, entries: Mapping[str, Mapping[str, Any]]) -> None:
        await run_in_threadpool(self._state.store, entries)


def build_pending_store(backend: str, *, path: Path, ttl: timedelta = DEFAULT_TTL) -> PendingTransactionStore:
    normalized = (backend or "file").strip().lower()
    if normalized == "memory":
        return InMemoryPendingStore(ttl=ttl)
    if normalized != "file":
        logger.warning("Unknown pending store backend '%s'; using the JSON file store.", backend)
    return JsonFilePendingStore(path, ttl=ttl)


__all__ = [
    "DEFAULT_TTL",
    "InMemoryPendingStore",
    "JsonFilePendingStore",
    "PendingTransaction",
    "PendingTransactionStore",
    "build_pending_store",
]
