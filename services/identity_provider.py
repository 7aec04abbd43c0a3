"""Identity provider adapter (Firebase Authentication)."""

from __future__ import annotations

import abc
from typing import Any, Optional

from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from starlette.concurrency import run_in_threadpool

from core.errors import QuotaExceeded, UpstreamError, UpstreamUnavailable
from core.logging import get_logger

logger = get_logger(__name__)


class IdentityProvider(abc.ABC):
    @abc.abstractmethod
    async def delete_user(self, uid: str) -> bool:
        """Delete the identity for ``uid``.

        Returns ``False`` when the identity was already absent. Any other
        provider failure raises a ``ServiceError`` subclass.
        """

    async def ping(self) -> bool:
        return True


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(self, app: Optional[Any] = None) -> None:
        self._app = app

    async def delete_user(self, uid: str) -> bool:
        try:
            await run_in_threadpool(firebase_auth.delete_user, uid, app=self._app)
        except firebase_auth.UserNotFoundError:
            logger.info("Identity %s already absent; treating deletion as complete.", uid)
            return False
        except firebase_exceptions.ResourceExhaustedError as exc:
            raise QuotaExceeded("Cuota del proveedor de identidad excedida.", code="identity.quota_exceeded") from exc
        except (
            firebase_exceptions.UnavailableError,
            firebase_exceptions.DeadlineExceededError,
            firebase_exceptions.UnauthenticatedError,
        ) as exc:
            logger.error("Identity provider unavailable deleting %s: %s", uid, exc)
            raise UpstreamUnavailable("Proveedor de identidad no disponible.", code="identity.unavailable") from exc
        except firebase_exceptions.FirebaseError as exc:
            logger.error("Identity provider rejected deletion of %s: %s", uid, exc)
            raise UpstreamError("No se pudo eliminar la identidad.", code="identity.error") from exc
        logger.info("Identity %s deleted.", uid)
        return True


__all__ = ["FirebaseIdentityProvider", "IdentityProvider"]
