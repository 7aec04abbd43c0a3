"""Webpay checkout flow: session creation and return-path reconciliation.

The pending intent recorded at checkout time is the only source of truth for
which plan and account a payment belongs to; the return request carries
nothing but gateway tokens.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional
from urllib.parse import urlencode

from core.errors import ServiceError, UpstreamUnavailable, ValidationError
from core.logging import get_logger
from core.plan_constants import SubscriptionStatus, resolve_plan
from services.commerce_metrics import record_checkout_outcome
from services.document_store import DocumentStore, user_path
from services.payments.pending_store import PendingTransaction, PendingTransactionStore
from services.payments.webpay_client import WebpayClient, WebpayCommit

logger = get_logger(__name__)

_MASKED_CARD_FALLBACK = "****"


class CheckoutOutcome(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    INVALID = "invalid"
    ERROR = "error"


@dataclass(frozen=True)
class CheckoutSession:
    buy_order: str
    session_id: str
    token: str
    url: str
    intent: PendingTransaction


@dataclass(frozen=True)
class CheckoutResult:
    outcome: CheckoutOutcome
    receipt: Dict[str, str] = field(default_factory=dict)
    session_id: Optional[str] = None

    def query_params(self) -> Dict[str, str]:
        params = {"status": self.outcome.value}
        if self.outcome is CheckoutOutcome.SUCCESS:
            params.update(self.receipt)
        return params

    def redirect_url(self, receipt_page: str) -> str:
        separator = "&" if "?" in receipt_page else "?"
        return f"{receipt_page}{separator}{urlencode(self.query_params())}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_checkout_ids() -> tuple[str, str]:
    """Return ``(buy_order, session_id)``: millisecond stamp plus a random suffix.

    Webpay caps buy orders at 26 characters and session ids at 61.
    """
    stamp = int(time.time() * 1000)
    buy_order = f"ORD-{stamp}-{secrets.token_hex(3)}"
    session_id = f"SES-{stamp}-{secrets.token_hex(6)}"
    return buy_order, session_id


class CheckoutService:
    def __init__(
        self,
        gateway: WebpayClient,
        pending: PendingTransactionStore,
        documents: Optional[DocumentStore],
        *,
        return_url: str,
        id_factory: Callable[[], tuple[str, str]] = generate_checkout_ids,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._pending = pending
        self._documents = documents
        self._return_url = return_url
        self._id_factory = id_factory
        self._clock = clock

    async def start_checkout(self, *, amount: Optional[int], plan: Optional[str], user_id: Optional[str]) -> CheckoutSession:
        """Record the purchase intent and open a Webpay session for it."""
        if not amount or not plan or not user_id:
            raise ValidationError("Faltan datos", code="checkout.missing_fields")
        if amount <= 0:
            raise ValidationError("El monto debe ser mayor a cero.", code="checkout.invalid_amount")
        resolved = resolve_plan(plan)
        if resolved is None:
            raise ValidationError(f"Plan desconocido: {plan}", code="checkout.unknown_plan")

        buy_order, session_id = self._id_factory()
        intent = await self._pending.put(session_id, plan=resolved.value, amount=amount, user_id=user_id)
        session = await self._gateway.create(
            buy_order=buy_order,
            session_id=session_id,
            amount=amount,
            return_url=self._return_url,
        )
        logger.info("Checkout initiated buy_order=%s session_id=%s user=%s plan=%s", buy_order, session_id, user_id, resolved.value)
        return CheckoutSession(
            buy_order=buy_order,
            session_id=session_id,
            token=session.token,
            url=session.url,
            intent=intent,
        )

    async def complete_checkout(self, *, token_ws: Optional[str], tbk_token: Optional[str]) -> CheckoutResult:
        """Resolve a gateway return into a terminal outcome; never raises."""
        result = await self._resolve(token_ws=token_ws, tbk_token=tbk_token)
        record_checkout_outcome(result.outcome.value)
        return result

    async def _resolve(self, *, token_ws: Optional[str], tbk_token: Optional[str]) -> CheckoutResult:
        if tbk_token:
            logger.info("Checkout cancelled by cardholder (TBK_TOKEN present).")
            return CheckoutResult(CheckoutOutcome.CANCELLED)
        if not token_ws:
            logger.warning("Checkout return without token_ws or TBK_TOKEN.")
            return CheckoutResult(CheckoutOutcome.INVALID)

        try:
            commit = await self._gateway.commit(token_ws)
            intent = await self._pending.take_and_expire(commit.session_id)
            if not commit.authorized:
                logger.info(
                    "Webpay did not authorise session %s (status=%s code=%s).",
                    commit.session_id,
                    commit.status,
                    commit.response_code,
                )
                return CheckoutResult(CheckoutOutcome.REJECTED, session_id=commit.session_id)
            accepted = self._accept_intent(intent, commit)
            if accepted is None:
                return CheckoutResult(CheckoutOutcome.REJECTED, session_id=commit.session_id)
            try:
                await self._activate_subscription(accepted)
            except Exception:
                await self._restore_paid_intent(accepted)
                raise
        except ServiceError as exc:
            logger.error("Checkout commit failed (%s): %s", exc.kind, exc.message)
            return CheckoutResult(CheckoutOutcome.ERROR)
        except Exception:
            logger.exception("Unexpected failure while committing checkout.")
            return CheckoutResult(CheckoutOutcome.ERROR)

        receipt = {
            "amount": str(commit.amount if commit.amount is not None else accepted.amount),
            "plan": accepted.plan,
            "card": commit.card_number or _MASKED_CARD_FALLBACK,
            "date": commit.transaction_date or self._clock().isoformat(),
        }
        logger.info("Checkout authorised session=%s user=%s plan=%s", commit.session_id, accepted.user_id, accepted.plan)
        return CheckoutResult(CheckoutOutcome.SUCCESS, receipt=receipt, session_id=commit.session_id)

    def _accept_intent(self, intent: Optional[PendingTransaction], commit: WebpayCommit) -> Optional[PendingTransaction]:
        if intent is None:
            logger.warning("Authorised session %s has no stored intent; rejecting.", commit.session_id)
            return None
        if not intent.user_id or resolve_plan(intent.plan) is None:
            logger.warning("Stored intent for session %s lacks a user or a recognised plan.", commit.session_id)
            return None
        if commit.amount is not None and commit.amount != intent.amount:
            logger.warning(
                "Amount mismatch for session %s: gateway=%s stored=%s.",
                commit.session_id,
                commit.amount,
                intent.amount,
            )
            return None
        return intent

    async def _restore_paid_intent(self, intent: PendingTransaction) -> None:
        """Put an authorised intent back so the paid plan can be applied later."""
        logger.error(
            "Payment authorised but plan activation failed: session=%s user=%s plan=%s amount=%s.",
            intent.session_id,
            intent.user_id,
            intent.plan,
            intent.amount,
        )
        try:
            await self._pending.put(
                intent.session_id,
                plan=intent.plan,
                amount=intent.amount,
                user_id=intent.user_id,
            )
        except Exception:
            logger.exception("Could not restore pending intent for session %s.", intent.session_id)

    async def _activate_subscription(self, intent: PendingTransaction) -> None:
        if self._documents is None:
            raise UpstreamUnavailable("Base de datos no disponible.", code="store.unavailable")
        await self._documents.update(
            user_path(intent.user_id),
            {
                "plan": intent.plan,
                "planStartDate": self._clock().isoformat(),
                "subscriptionStatus": SubscriptionStatus.ACTIVE.value,
            },
        )


__all__ = [
    "CheckoutOutcome",
    "CheckoutResult",
    "CheckoutService",
    "CheckoutSession",
    "generate_checkout_ids",
]
