"""Payments service helpers."""

from .pending_store import (
    InMemoryPendingStore,
    JsonFilePendingStore,
    PendingTransaction,
    PendingTransactionStore,
    build_pending_store,
)
from .webpay_client import WebpayClient, WebpayCommit, WebpayError, WebpaySession

__all__ = [
    "InMemoryPendingStore",
    "JsonFilePendingStore",
    "PendingTransaction",
    "PendingTransactionStore",
    "WebpayClient",
    "WebpayCommit",
    "WebpayError",
    "WebpaySession",
    "build_pending_store",
]
