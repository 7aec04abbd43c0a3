"""Transbank Webpay Plus REST client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from core.errors import QuotaExceeded, UpstreamError, UpstreamUnavailable
from core.logging import get_logger
from core.settings import Settings

logger = get_logger(__name__)

_TRANSACTIONS_PATH = "/rswebpaytransaction/api/webpay/v1.2/transactions"

STATUS_AUTHORIZED = "AUTHORIZED"


class WebpayError(UpstreamError):
    """Raised when Webpay answers with a non-retryable error status."""

    default_code = "payments.webpay_error"
    default_message = "Webpay rechazó la solicitud."

    def __init__(self, status_code: int, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, payload=payload)
        self.http_status = status_code


@dataclass(frozen=True)
class WebpaySession:
    token: str
    url: str


@dataclass(frozen=True)
class WebpayCommit:
    status: Optional[str]
    response_code: Optional[int]
    amount: Optional[int]
    buy_order: Optional[str]
    session_id: Optional[str]
    card_number: Optional[str]
    transaction_date: Optional[str]
    authorization_code: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None

    @property
    def authorized(self) -> bool:
        return self.status == STATUS_AUTHORIZED and self.response_code in (0, None)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WebpayCommit":
        card_detail = payload.get("card_detail") or {}
        amount = payload.get("amount")
        response_code = payload.get("response_code")
        return cls(
            status=payload.get("status"),
            response_code=int(response_code) if isinstance(response_code, (int, float)) else None,
            amount=int(amount) if isinstance(amount, (int, float)) else None,
            buy_order=payload.get("buy_order"),
            session_id=payload.get("session_id"),
            card_number=card_detail.get("card_number") if isinstance(card_detail, dict) else None,
            transaction_date=payload.get("transaction_date"),
            authorization_code=payload.get("authorization_code"),
            raw=payload,
        )


def _error_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {"body": response.text}
    if isinstance(payload, dict):
        return payload
    return {"body": payload}


class WebpayClient:
    """HTTP client wrapper for the Webpay Plus transaction API."""

    def __init__(
        self,
        commerce_code: str,
        api_key: str,
        base_url: str,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.commerce_code = commerce_code
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebpayClient":
        return cls(
            settings.webpay_commerce_code,
            settings.webpay_api_key,
            settings.webpay_base_url,
            timeout=settings.webpay_timeout_seconds,
        )

    async def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        headers = {
            "Tbk-Api-Key-Id": self.commerce_code,
            "Tbk-Api-Key-Secret": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("Webpay request timed out: %s %s", method, path)
            raise UpstreamUnavailable("Webpay no respondió a tiempo.", code="payments.webpay_timeout") from exc
        except httpx.RequestError as exc:
            logger.warning("Webpay request failed: %s %s: %s", method, path, exc)
            raise UpstreamUnavailable("No se pudo contactar a Webpay.", code="payments.webpay_unreachable") from exc

        if response.status_code >= 400:
            payload = _error_body(response)
            message = payload.get("error_message") or payload.get("message") or "Webpay rechazó la solicitud."
            logger.warning("Webpay API error %s: %s", response.status_code, payload)
            if response.status_code == 429:
                raise QuotaExceeded("Webpay limitó las solicitudes. Intenta luego.", code="payments.webpay_rate_limited")
            if response.status_code >= 500:
                raise UpstreamUnavailable("Webpay no está disponible.", code="payments.webpay_unavailable", payload=payload)
            raise WebpayError(response.status_code, message, payload=payload)
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("Webpay devolvió una respuesta ilegible.", code="payments.webpay_bad_response") from exc
        if not isinstance(body, dict):
            raise UpstreamError("Webpay devolvió una respuesta ilegible.", code="payments.webpay_bad_response")
        return body

    async def create(self, *, buy_order: str, session_id: str, amount: int, return_url: str) -> WebpaySession:
        """Create a transaction and return the redirect token/url."""
        logger.info("Creating Webpay transaction buy_order=%s session_id=%s", buy_order, session_id)
        payload = await self._request(
            "POST",
            _TRANSACTIONS_PATH,
            json={
                "buy_order": buy_order,
                "session_id": session_id,
                "amount": amount,
                "return_url": return_url,
            },
        )
        return WebpaySession(token=str(payload.get("token") or ""), url=str(payload.get("url") or ""))

    async def commit(self, token: str) -> WebpayCommit:
        """Confirm a transaction after the cardholder returns from Webpay."""
        logger.info("Committing Webpay transaction token=%s...", token[:8])
        payload = await self._request("PUT", f"{_TRANSACTIONS_PATH}/{token}")
        return WebpayCommit.from_payload(payload)


__all__ = ["STATUS_AUTHORIZED", "WebpayClient", "WebpayCommit", "WebpayError", "WebpaySession"]
