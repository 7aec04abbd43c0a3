from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as gcp_exceptions

from core.errors import NotFoundError, QuotaExceeded, UpstreamError, UpstreamUnavailable
from services import identity_provider
from services.document_store import FirestoreDocumentStore
from services.identity_provider import FirebaseIdentityProvider


class _Snapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]], path: str = "") -> None:
        self.id = doc_id
        self._data = data
        self.exists = data is not None
        self.reference = type("Ref", (), {"path": path})()

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return self._data


class _DocumentRef:
    def __init__(self, client: "_FirestoreClient", path: str) -> None:
        self._client = client
        self.path = path

    async def get(self) -> _Snapshot:
        self._client.raise_if_failing()
        return _Snapshot(self.path.rsplit("/", 1)[-1], self._client.data.get(self.path))

    async def update(self, fields: Dict[str, Any]) -> None:
        self._client.raise_if_failing()
        self._client.updates.append((self.path, fields))

    async def delete(self) -> None:
        self._client.raise_if_failing()


class _Query:
    def __init__(self, client: "_FirestoreClient", snapshots: List[_Snapshot]) -> None:
        self._client = client
        self._snapshots = snapshots

    def where(self, *, filter: Any) -> "_Query":
        self._client.calls.append(("where", filter.field_path, filter.op_string, filter.value))
        return self

    def order_by(self, field: Any, direction: str = "ASCENDING") -> "_Query":
        self._client.calls.append(("order_by", field, direction))
        return self

    def limit(self, count: int) -> "_Query":
        self._client.calls.append(("limit", count))
        return self

    async def stream(self):
        self._client.raise_if_failing()
        for snapshot in self._snapshots:
            yield snapshot


class _Batch:
    def __init__(self, client: "_FirestoreClient") -> None:
        self._client = client
        self.deleted: List[str] = []

    def delete(self, reference: _DocumentRef) -> None:
        self.deleted.append(reference.path)

    async def commit(self) -> None:
        self._client.raise_if_failing()
        self._client.commits.append(list(self.deleted))


class _FirestoreClient:
    """Shape-compatible stand-in for ``firestore.AsyncClient``."""

    def __init__(self, data: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.data = data or {}
        self.error: Optional[Exception] = None
        self.updates: List[Any] = []
        self.commits: List[List[str]] = []
        self.calls: List[Any] = []
        self.batches: List[_Batch] = []

    def raise_if_failing(self) -> None:
        if self.error is not None:
            raise self.error

    def document(self, path: str) -> _DocumentRef:
        return _DocumentRef(self, path)

    def collection(self, path: str) -> _Query:
        snapshots = [
            _Snapshot(doc_path.rsplit("/", 1)[-1], data, doc_path)
            for doc_path, data in sorted(self.data.items())
            if doc_path.rsplit("/", 1)[0] == path
        ]
        return _Query(self, snapshots)

    def batch(self) -> _Batch:
        batch = _Batch(self)
        self.batches.append(batch)
        return batch


def test_firebase_identity_missing_user_counts_as_deleted(monkeypatch) -> None:
    def delete_user(uid, app=None):
        raise firebase_auth.UserNotFoundError("No user record found.")

    monkeypatch.setattr(identity_provider.firebase_auth, "delete_user", delete_user)

    assert asyncio.run(FirebaseIdentityProvider().delete_user("u1")) is False


def test_firebase_identity_success_returns_true(monkeypatch) -> None:
    seen = []

    def delete_user(uid, app=None):
        seen.append((uid, app))

    monkeypatch.setattr(identity_provider.firebase_auth, "delete_user", delete_user)

    assert asyncio.run(FirebaseIdentityProvider(app="repleno-app").delete_user("u1")) is True
    assert seen == [("u1", "repleno-app")]


@pytest.mark.parametrize(
    "error, expected",
    [
        (firebase_exceptions.UnavailableError("backend down"), UpstreamUnavailable),
        (firebase_exceptions.DeadlineExceededError("too slow"), UpstreamUnavailable),
        (firebase_exceptions.ResourceExhaustedError("quota"), QuotaExceeded),
        (firebase_exceptions.PermissionDeniedError("denied"), UpstreamError),
    ],
)
def test_firebase_identity_errors_are_classified(monkeypatch, error, expected) -> None:
    def delete_user(uid, app=None):
        raise error

    monkeypatch.setattr(identity_provider.firebase_auth, "delete_user", delete_user)

    with pytest.raises(expected) as excinfo:
        asyncio.run(FirebaseIdentityProvider().delete_user("u1"))
    assert excinfo.value.__cause__ is error


def test_firestore_get_returns_none_for_missing_document() -> None:
    store = FirestoreDocumentStore(_FirestoreClient({"users/u1": {"plan": "Plan Premium"}}))

    assert asyncio.run(store.get("users/u1")) == {"plan": "Plan Premium"}
    assert asyncio.run(store.get("users/ghost")) is None


@pytest.mark.parametrize(
    "error, expected, code",
    [
        (gcp_exceptions.NotFound("missing"), NotFoundError, "store.not_found"),
        (gcp_exceptions.ResourceExhausted("quota"), QuotaExceeded, "store.quota_exceeded"),
        (gcp_exceptions.ServiceUnavailable("down"), UpstreamUnavailable, "store.unavailable"),
        (gcp_exceptions.DeadlineExceeded("slow"), UpstreamUnavailable, "store.unavailable"),
        (gcp_exceptions.InvalidArgument("bad field"), UpstreamError, "store.error"),
    ],
)
def test_firestore_errors_are_classified(error, expected, code) -> None:
    client = _FirestoreClient()
    client.error = error
    store = FirestoreDocumentStore(client)

    with pytest.raises(expected) as excinfo:
        asyncio.run(store.update("users/u1", {"plan": "Plan Premium"}))
    assert excinfo.value.code == code


def test_firestore_query_errors_are_classified() -> None:
    client = _FirestoreClient()
    client.error = gcp_exceptions.ServiceUnavailable("down")
    store = FirestoreDocumentStore(client)

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(store.query("support_tickets", "userId", "==", "u1"))
    assert asyncio.run(store.ping()) is False


def test_firestore_delete_many_commits_one_batch() -> None:
    client = _FirestoreClient()
    store = FirestoreDocumentStore(client)
    paths = [f"business_data/u1/transactions/t{index}" for index in range(3)]

    asyncio.run(store.delete_many(paths))

    assert client.commits == [paths]
    assert len(client.batches) == 1


def test_firestore_delete_many_skips_empty_batches() -> None:
    client = _FirestoreClient()
    asyncio.run(FirestoreDocumentStore(client).delete_many([]))

    assert client.batches == []
    assert client.commits == []


def test_firestore_batch_failure_is_classified() -> None:
    client = _FirestoreClient()
    client.error = gcp_exceptions.ResourceExhausted("quota")

    with pytest.raises(QuotaExceeded):
        asyncio.run(FirestoreDocumentStore(client).delete_many(["users/u1"]))


def test_firestore_list_document_paths_pages_by_document_id() -> None:
    client = _FirestoreClient({"users/a": {}, "users/b": {}, "tickets/x": {}})
    store = FirestoreDocumentStore(client)

    paths = asyncio.run(store.list_document_paths("users", 500))

    assert paths == ["users/a", "users/b"]
    assert client.calls == [("order_by", "__name__", "ASCENDING"), ("limit", 500)]


def test_firestore_query_orders_in_the_database() -> None:
    client = _FirestoreClient({"support_tickets/t1": {"userId": "u1"}})
    store = FirestoreDocumentStore(client)

    records = asyncio.run(
        store.query("support_tickets", "userId", "==", "u1", order_by="createdAt", descending=True)
    )

    assert records == [("t1", {"userId": "u1"})]
    assert client.calls == [("where", "userId", "==", "u1"), ("order_by", "createdAt", "DESCENDING")]
