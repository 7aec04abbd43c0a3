"""Premium-only AI advisory: entitlement gate, prompt, model call, sanitising."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from core.errors import AuthorizationError, ForbiddenError, UpstreamUnavailable, ValidationError
from core.logging import get_logger
from core.plan_constants import PREMIUM_PLAN
from llm.advisor_client import AdvisorClient
from llm.prompts import business_advice
from services.document_store import DocumentStore, user_path

logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:html)?", re.IGNORECASE)
_CLOSING_DIV = "</div>"

PREMIUM_ONLY_HTML = '<div class="p-4 bg-red-50 text-red-800 rounded-lg">🔒 Solo Plan Premium</div>'


def sanitize_model_html(text: str) -> str:
    """Strip code fences and anything trailing the last closing ``</div>``."""
    cleaned = _FENCE_PATTERN.sub("", text or "").strip()
    last_div = cleaned.rfind(_CLOSING_DIV)
    if last_div != -1:
        cleaned = cleaned[: last_div + len(_CLOSING_DIV)]
    return cleaned


class AdvisoryService:
    def __init__(self, documents: Optional[DocumentStore], advisor: Optional[AdvisorClient]) -> None:
        self._documents = documents
        self._advisor = advisor

    async def ensure_premium(self, user_id: Optional[str]) -> Mapping[str, Any]:
        """Load the account and confirm it is on the premium tier right now."""
        if not user_id or not user_id.strip():
            raise AuthorizationError("No autorizado", code="advisor.user_required")
        if self._documents is None:
            raise UpstreamUnavailable("Base de datos no disponible.", code="store.unavailable")
        account = await self._documents.get(user_path(user_id.strip()))
        if account is None or account.get("plan") != PREMIUM_PLAN.value:
            raise ForbiddenError(
                "Solo Plan Premium",
                code="advisor.premium_required",
                payload={"html": PREMIUM_ONLY_HTML},
            )
        return account

    async def advise(self, user_id: Optional[str], summary: Any) -> str:
        await self.ensure_premium(user_id)
        if not isinstance(summary, Mapping):
            raise ValidationError("Falta el resumen del negocio.", code="advisor.summary_required")
        if self._advisor is None or not self._advisor.configured:
            raise UpstreamUnavailable("La IA no está configurada.", code="advisor.not_configured")
        text = await self._advisor.generate(business_advice.get_prompt(summary))
        logger.info("Advisory generated for user %s (%d chars).", user_id, len(text))
        return sanitize_model_html(text)


__all__ = ["AdvisoryService", "PREMIUM_ONLY_HTML", "sanitize_model_html"]
