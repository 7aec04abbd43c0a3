"""Document database adapter (Cloud Firestore) with typed error translation."""

from __future__ import annotations

import abc
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore_v1.field_path import FieldPath
from google.cloud.firestore_v1.base_query import FieldFilter

from core.errors import NotFoundError, QuotaExceeded, UpstreamError, UpstreamUnavailable
from core.logging import get_logger

logger = get_logger(__name__)

USERS_COLLECTION = "users"
BUSINESS_DATA_COLLECTION = "business_data"
TRANSACTIONS_SUBCOLLECTION = "transactions"
TICKETS_COLLECTION = "support_tickets"

DocumentRecord = Tuple[str, Dict[str, Any]]


class DocumentStore(abc.ABC):
    """Minimal async document API used by the services layer.

    Paths are slash-separated (``users/u1``, ``business_data/u1/transactions``).
    """

    @abc.abstractmethod
    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        """Return the document data or ``None`` when it does not exist."""

    @abc.abstractmethod
    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        """Apply ``fields`` as one update; raises ``NotFoundError`` for missing documents."""

    @abc.abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a document; deleting a missing document is a no-op."""

    @abc.abstractmethod
    async def add(self, collection_path: str, data: Mapping[str, Any]) -> str:
        """Create a document with a generated id and return that id."""

    @abc.abstractmethod
    async def list_document_paths(self, collection_path: str, limit: int) -> List[str]:
        """Return up to ``limit`` document paths ordered by document id."""

    @abc.abstractmethod
    async def delete_many(self, paths: Sequence[str]) -> None:
        """Delete ``paths`` in a single atomic batch write."""

    @abc.abstractmethod
    async def list_subcollections(self, document_path: str) -> List[str]:
        """Return the ids of the collections nested under ``document_path``."""

    @abc.abstractmethod
    async def query(
        self,
        collection_path: str,
        field: str,
        op: str,
        value: Any,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[DocumentRecord]:
        ...

    @abc.abstractmethod
    async def list_all(
        self,
        collection_path: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[DocumentRecord]:
        ...

    async def ping(self) -> bool:
        try:
            await self.list_document_paths(USERS_COLLECTION, 1)
        except Exception as exc:
            logger.warning("Document store ping failed: %s", exc)
            return False
        return True


@contextmanager
def _translate_errors(operation: str, path: str) -> Iterator[None]:
    """Map google-api-core exceptions onto the shared error taxonomy."""
    try:
        yield
    except gcp_exceptions.NotFound as exc:
        raise NotFoundError(f"Documento no encontrado: {path}", code="store.not_found") from exc
    except (gcp_exceptions.ResourceExhausted, gcp_exceptions.TooManyRequests) as exc:
        logger.warning("Firestore quota exhausted during %s on %s: %s", operation, path, exc)
        raise QuotaExceeded("Cuota de base de datos excedida.", code="store.quota_exceeded") from exc
    except (
        gcp_exceptions.ServiceUnavailable,
        gcp_exceptions.DeadlineExceeded,
        gcp_exceptions.RetryError,
        gcp_exceptions.Unauthenticated,
    ) as exc:
        logger.error("Firestore unavailable during %s on %s: %s", operation, path, exc)
        raise UpstreamUnavailable("Base de datos no disponible.", code="store.unavailable") from exc
    except gcp_exceptions.GoogleAPIError as exc:
        logger.error("Firestore error during %s on %s: %s", operation, path, exc)
        raise UpstreamError("Error en la base de datos.", code="store.error") from exc


class FirestoreDocumentStore(DocumentStore):
    """``DocumentStore`` backed by ``google.cloud.firestore.AsyncClient``."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        with _translate_errors("get", path):
            snapshot = await self._client.document(path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        with _translate_errors("update", path):
            await self._client.document(path).update(dict(fields))

    async def delete(self, path: str) -> None:
        with _translate_errors("delete", path):
            await self._client.document(path).delete()

    async def add(self, collection_path: str, data: Mapping[str, Any]) -> str:
        with _translate_errors("add", collection_path):
            _, reference = await self._client.collection(collection_path).add(dict(data))
        return reference.id

    async def list_document_paths(self, collection_path: str, limit: int) -> List[str]:
        query = self._client.collection(collection_path).order_by(FieldPath.document_id()).limit(limit)
        paths: List[str] = []
        with _translate_errors("list", collection_path):
            async for snapshot in query.stream():
                paths.append(snapshot.reference.path)
        return paths

    async def delete_many(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        batch = self._client.batch()
        for path in paths:
            batch.delete(self._client.document(path))
        with _translate_errors("batch_delete", paths[0]):
            await batch.commit()

    async def list_subcollections(self, document_path: str) -> List[str]:
        names: List[str] = []
        with _translate_errors("list_collections", document_path):
            async for collection in self._client.document(document_path).collections():
                names.append(collection.id)
        return names

    async def query(
        self,
        collection_path: str,
        field: str,
        op: str,
        value: Any,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[DocumentRecord]:
        query = self._client.collection(collection_path).where(filter=FieldFilter(field, op, value))
        if order_by:
            query = query.order_by(order_by, direction="DESCENDING" if descending else "ASCENDING")
        return await self._collect(query, collection_path)

    async def list_all(
        self,
        collection_path: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[DocumentRecord]:
        query: Any = self._client.collection(collection_path)
        if order_by:
            query = query.order_by(order_by, direction="DESCENDING" if descending else "ASCENDING")
        return await self._collect(query, collection_path)

    async def _collect(self, query: Any, collection_path: str) -> List[DocumentRecord]:
        records: List[DocumentRecord] = []
        with _translate_errors("query", collection_path):
            async for snapshot in query.stream():
                records.append((snapshot.id, snapshot.to_dict() or {}))
        return records


def user_path(uid: str) -> str:
    return f"{USERS_COLLECTION}/{uid}"


def business_data_path(uid: str) -> str:
    return f"{BUSINESS_DATA_COLLECTION}/{uid}"


def ticket_path(ticket_id: str) -> str:
    return f"{TICKETS_COLLECTION}/{ticket_id}"


__all__ = [
    "BUSINESS_DATA_COLLECTION",
    "DocumentRecord",
    "DocumentStore",
    "FirestoreDocumentStore",
    "TICKETS_COLLECTION",
    "TRANSACTIONS_SUBCOLLECTION",
    "USERS_COLLECTION",
    "business_data_path",
    "ticket_path",
    "user_path",
]
