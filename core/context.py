"""Application context built once at startup and shared by handlers and tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

from core.errors import UpstreamUnavailable
from core.logging import get_logger
from core.settings import Settings
from llm.advisor_client import AdvisorClient
from services.accounts.deletion_sweep import DeletionSweeper
from services.advisory_service import AdvisoryService
from services.document_store import DocumentStore, FirestoreDocumentStore
from services.firebase_app import initialise_firebase
from services.identity_provider import FirebaseIdentityProvider, IdentityProvider
from services.payments.checkout_service import CheckoutService
from services.payments.pending_store import PendingTransactionStore, build_pending_store
from services.payments.webpay_client import WebpayClient

logger = get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    pending: PendingTransactionStore
    gateway: WebpayClient
    documents: Optional[DocumentStore] = None
    identity: Optional[IdentityProvider] = None
    advisor: Optional[AdvisorClient] = None
    sweeper: Optional[DeletionSweeper] = None
    startup_errors: Dict[str, str] = field(default_factory=dict)

    def require_documents(self) -> DocumentStore:
        if self.documents is None:
            raise UpstreamUnavailable("Base de datos no disponible.", code="store.unavailable")
        return self.documents

    def require_identity(self) -> IdentityProvider:
        if self.identity is None:
            raise UpstreamUnavailable("Proveedor de identidad no disponible.", code="identity.unavailable")
        return self.identity

    def checkout_service(self) -> CheckoutService:
        return CheckoutService(
            self.gateway,
            self.pending,
            self.documents,
            return_url=self.settings.return_url,
        )

    def advisory_service(self) -> AdvisoryService:
        return AdvisoryService(self.documents, self.advisor)

    async def readiness(self) -> Dict[str, Any]:
        documents_ok = await self.documents.ping() if self.documents is not None else False
        identity_ok = await self.identity.ping() if self.identity is not None else False
        return {
            "documents": {"ok": documents_ok},
            "identity": {"ok": identity_ok},
            "advisor": {"ok": bool(self.advisor and self.advisor.configured)},
            "pendingStore": {"backend": self.settings.pending_store_backend},
            "errors": dict(self.startup_errors),
        }


def build_app_context(settings: Settings) -> AppContext:
    """Wire adapters from ``settings``; missing credentials degrade, never crash."""
    errors: Dict[str, str] = {}
    pending = build_pending_store(
        settings.pending_store_backend,
        path=settings.pending_store_path,
        ttl=timedelta(hours=settings.pending_ttl_hours),
    )
    gateway = WebpayClient.from_settings(settings)

    documents: Optional[DocumentStore] = None
    identity: Optional[IdentityProvider] = None
    firebase = initialise_firebase(settings)
    if firebase.ready:
        documents = FirestoreDocumentStore(firebase.firestore)
        identity = FirebaseIdentityProvider(firebase.app)
    else:
        errors["firebase"] = firebase.error or "unavailable"

    advisor = AdvisorClient(
        model=settings.advisor_model,
        api_key=settings.gemini_api_key,
        max_retries=settings.advisor_max_retries,
        backoff_seconds=settings.advisor_backoff_seconds,
        timeout=settings.advisor_timeout_seconds,
    )
    if advisor.configured:
        logger.info("Advisor model %s configured.", settings.advisor_model)
    else:
        errors["advisor"] = "GEMINI_API_KEY missing"

    sweeper: Optional[DeletionSweeper] = None
    if documents is not None and identity is not None and settings.deletion_sweep_enabled:
        sweeper = DeletionSweeper(
            documents,
            identity,
            interval=settings.deletion_sweep_interval_seconds,
            batch_size=settings.purge_batch_size,
        )

    if errors:
        logger.warning("Application started in degraded mode: %s", errors)
    return AppContext(
        settings=settings,
        pending=pending,
        gateway=gateway,
        documents=documents,
        identity=identity,
        advisor=advisor,
        sweeper=sweeper,
        startup_errors=errors,
    )


__all__ = ["AppContext", "build_app_context"]
