"""Typed error taxonomy shared by adapters, services and routers.

Adapters translate SDK failures into these kinds so callers can dispatch on
``kind``/``status_code`` instead of parsing provider messages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(RuntimeError):
    """Base class for errors that map onto a structured JSON response."""

    status_code: int = 500
    default_code: str = "service.error"
    default_message: str = "Ocurrió un error inesperado."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.payload = payload or {}
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.payload:
            detail["details"] = self.payload
        return detail


class ValidationError(ServiceError):
    status_code = 400
    default_code = "request.invalid"
    default_message = "Faltan datos"


class AuthorizationError(ServiceError):
    status_code = 401
    default_code = "auth.required"
    default_message = "No autorizado"


class ForbiddenError(ServiceError):
    status_code = 403
    default_code = "auth.forbidden"
    default_message = "No tienes permisos para esta acción."


class NotFoundError(ServiceError):
    status_code = 404
    default_code = "resource.not_found"
    default_message = "Recurso no encontrado."


class ConflictError(ServiceError):
    status_code = 409
    default_code = "resource.conflict"
    default_message = "El recurso ya fue procesado."


class QuotaExceeded(ServiceError):
    status_code = 429
    default_code = "upstream.quota_exceeded"
    default_message = "Cuota excedida. Intenta en unos minutos."


class UpstreamUnavailable(ServiceError):
    status_code = 503
    default_code = "upstream.unavailable"
    default_message = "Servicio externo no disponible. Intenta luego."


class UpstreamError(ServiceError):
    status_code = 500
    default_code = "upstream.error"
    default_message = "El servicio externo respondió con un error."


__all__ = [
    "AuthorizationError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "QuotaExceeded",
    "ServiceError",
    "UpstreamError",
    "UpstreamUnavailable",
    "ValidationError",
]
