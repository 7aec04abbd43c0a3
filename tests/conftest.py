from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from core.context import AppContext
from core.settings import Settings
from llm.advisor_client import AdvisorClient
from services.payments.pending_store import InMemoryPendingStore
from tests.fakes import (
    FakeIdentityProvider,
    FakeWebpayGateway,
    InMemoryDocumentStore,
    ADVICE_HTML,
    RecordingSleep,
    ScriptedCompletion,
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("GEMINI_API_KEY", "FIREBASE_SERVICE_ACCOUNT", "ENABLE_GOOGLE_CLOUD_LOGGING"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def gateway() -> FakeWebpayGateway:
    return FakeWebpayGateway()


@pytest.fixture()
def pending() -> InMemoryPendingStore:
    return InMemoryPendingStore()


@pytest.fixture()
def completion() -> ScriptedCompletion:
    return ScriptedCompletion(ADVICE_HTML)


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def app_context(
    documents: InMemoryDocumentStore,
    identity: FakeIdentityProvider,
    gateway: FakeWebpayGateway,
    pending: InMemoryPendingStore,
    completion: ScriptedCompletion,
    sleep: RecordingSleep,
) -> AppContext:
    settings = Settings(
        public_base_url="https://repleno.test",
        receipt_page_url="/retorno.html",
        pending_store_backend="memory",
        gemini_api_key="test-key",
        deletion_sweep_enabled=False,
    )
    advisor = AdvisorClient(
        model=settings.advisor_model,
        api_key=settings.gemini_api_key,
        completion=completion,
        sleep=sleep,
    )
    return AppContext(
        settings=settings,
        pending=pending,
        gateway=gateway,  # type: ignore[arg-type]
        documents=documents,
        identity=identity,
        advisor=advisor,
    )


@pytest.fixture()
def api_client(app_context: AppContext) -> Iterator[TestClient]:
    from web.main import create_app

    client = TestClient(create_app(app_context), raise_server_exceptions=False)
    try:
        yield client
    finally:
        client.close()
