"""Prometheus counters for checkout, account deletion and advisory flows."""

from __future__ import annotations

from typing import Any, Callable, Optional

from prometheus_client import REGISTRY, Counter, Histogram

from core.logging import get_logger

logger = get_logger(__name__)


def _register(factory: Callable[..., Any], name: str, documentation: str, **kwargs: Any) -> Optional[Any]:
    """Build a collector, reusing the registered one when the module is reloaded."""
    try:
        return factory(name, documentation, **kwargs)
    except ValueError:
        existing = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if existing is None:
            logger.debug("Collector %s already registered but not found in registry.", name)
        return existing


_CHECKOUT_OUTCOMES = _register(
    Counter,
    "repleno_checkout_outcomes_total",
    "Terminal outcomes of Webpay checkout returns.",
    labelnames=("outcome",),
)
_ACCOUNT_DELETIONS = _register(
    Counter,
    "repleno_account_deletions_total",
    "Account deletion attempts grouped by trigger and result.",
    labelnames=("trigger", "result"),
)
_PURGED_DOCUMENTS = _register(
    Counter,
    "repleno_purged_documents_total",
    "Documents removed by nested collection purges.",
)
_ADVISOR_ATTEMPTS = _register(
    Counter,
    "repleno_advisor_attempts_total",
    "Generative model attempts grouped by result.",
    labelnames=("result",),
)
_ADVISOR_LATENCY = _register(
    Histogram,
    "repleno_advisor_latency_seconds",
    "Latency of successful generative model calls.",
    buckets=(0.5, 1, 2, 5, 10, 20, 40),
)


def record_checkout_outcome(outcome: str) -> None:
    if _CHECKOUT_OUTCOMES is not None:
        _CHECKOUT_OUTCOMES.labels(outcome=outcome).inc()


def record_account_deletion(trigger: str, result: str) -> None:
    if _ACCOUNT_DELETIONS is not None:
        _ACCOUNT_DELETIONS.labels(trigger=trigger, result=result).inc()


def record_purged_documents(count: int) -> None:
    if _PURGED_DOCUMENTS is not None and count > 0:
        _PURGED_DOCUMENTS.inc(count)


def record_advisor_attempt(result: str, *, latency: float | None = None) -> None:
    if _ADVISOR_ATTEMPTS is not None:
        _ADVISOR_ATTEMPTS.labels(result=result).inc()
    if latency is not None and _ADVISOR_LATENCY is not None:
        _ADVISOR_LATENCY.observe(max(latency, 0.0))


__all__ = [
    "record_account_deletion",
    "record_advisor_attempt",
    "record_checkout_outcome",
    "record_purged_documents",
]
