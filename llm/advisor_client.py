"""Generative model client used by the advisory feature (Gemini through LiteLLM)."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import litellm

from core.errors import QuotaExceeded, ServiceError, UpstreamError, UpstreamUnavailable
from core.logging import get_logger
from services.commerce_metrics import record_advisor_attempt

logger = get_logger(__name__)

Completion = Callable[..., Awaitable[Any]]
Sleep = Callable[[float], Awaitable[None]]

_TRANSIENT_ERRORS: Tuple[type, ...] = (
    litellm.Timeout,
    litellm.APIConnectionError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
)
_PERMANENT_ERRORS: Tuple[type, ...] = (
    litellm.AuthenticationError,
    litellm.PermissionDeniedError,
    litellm.BadRequestError,
    litellm.NotFoundError,
)


def classify_model_error(exc: Exception) -> Tuple[ServiceError, bool]:
    """Return ``(error, transient)`` for a model failure."""
    if isinstance(exc, litellm.RateLimitError):
        return QuotaExceeded("Cuota de IA excedida. Intenta en unos minutos.", code="advisor.quota_exceeded"), True
    if isinstance(exc, _TRANSIENT_ERRORS):
        return UpstreamUnavailable("La IA está dormida. Intenta luego.", code="advisor.unavailable"), True
    if isinstance(exc, _PERMANENT_ERRORS):
        return UpstreamError("La IA rechazó la solicitud.", code="advisor.rejected"), False
    if isinstance(exc, litellm.APIError):
        return UpstreamUnavailable("La IA está dormida. Intenta luego.", code="advisor.unavailable"), True
    return UpstreamError("La IA está dormida. Intenta luego.", code="advisor.error"), False


def _choice_content(response: Any) -> str:
    """Extract the first choice's message content from a LiteLLM response."""
    choices = getattr(response, "choices", None)
    if choices is None and isinstance(response, dict):
        choices = response.get("choices")
    if not choices:
        return ""
    first = choices[0]
    message = getattr(first, "message", None)
    if message is None and isinstance(first, dict):
        message = first.get("message")
    content = getattr(message, "content", None)
    if content is None and isinstance(message, dict):
        content = message.get("content")
    return content if isinstance(content, str) else ""


class AdvisorClient:
    def __init__(
        self,
        *,
        model: str,
        api_key: Optional[str],
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        timeout: float = 60.0,
        completion: Completion = litellm.acompletion,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._max_retries = max(0, max_retries)
        self._backoff = backoff_seconds
        self._timeout = timeout
        self._completion = completion
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def generate(self, messages: List[Dict[str, Any]]) -> str:
        """Call the model, retrying transient failures with linear backoff.

        Waits ``backoff * n`` seconds before retry ``n`` (1s, 2s, 3s by
        default). The last classified error is raised once retries run out.
        """
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            started = time.perf_counter()
            try:
                response = await self._completion(
                    model=self.model,
                    messages=messages,
                    api_key=self._api_key,
                    timeout=self._timeout,
                )
            except Exception as exc:
                error, transient = classify_model_error(exc)
                record_advisor_attempt(error.code)
                logger.warning(
                    "Advisor model call failed (attempt %d/%d, %s): %s",
                    attempt,
                    attempts,
                    error.kind,
                    exc,
                )
                if not transient or attempt == attempts:
                    raise error from exc
                await self._sleep(self._backoff * attempt)
                continue
            record_advisor_attempt("ok", latency=time.perf_counter() - started)
            return _choice_content(response)
        raise UpstreamError("La IA está dormida. Intenta luego.", code="advisor.error")  # pragma: no cover


__all__ = ["AdvisorClient", "classify_model_error"]
