"""Firebase Admin bootstrap: credential resolution and client construction."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import firebase_admin
from firebase_admin import credentials, firestore_async

from core.logging import get_logger
from core.settings import Settings

logger = get_logger(__name__)

_APP_NAME = "repleno"


@dataclass(frozen=True)
class FirebaseHandles:
    app: Optional[Any]
    firestore: Optional[Any]
    error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.app is not None and self.firestore is not None


def load_service_account(settings: Settings) -> Optional[Mapping[str, Any]]:
    """Resolve service credentials: env JSON blob first, then the local key file."""
    if settings.firebase_service_account:
        return settings.firebase_service_account
    path = Path(settings.firebase_credentials_file)
    if not path.is_file():
        logger.warning("Firebase credentials not found (env FIREBASE_SERVICE_ACCOUNT unset, no %s).", path)
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read Firebase credentials file %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        logger.error("Firebase credentials file %s does not contain a JSON object.", path)
        return None
    return payload


def initialise_firebase(settings: Settings) -> FirebaseHandles:
    """Initialise (or reuse) the Firebase app and its async Firestore client."""
    service_account = load_service_account(settings)
    if service_account is None:
        return FirebaseHandles(app=None, firestore=None, error="credentials_missing")
    try:
        try:
            app = firebase_admin.get_app(_APP_NAME)
        except ValueError:
            app = firebase_admin.initialize_app(credentials.Certificate(dict(service_account)), name=_APP_NAME)
        client = firestore_async.client(app)
    except Exception as exc:  # pragma: no cover - runtime guard
        logger.error("Firebase initialisation failed: %s", exc)
        return FirebaseHandles(app=None, firestore=None, error=str(exc))
    logger.info("Firebase initialised for project %s.", service_account.get("project_id", "unknown"))
    return FirebaseHandles(app=app, firestore=client)


__all__ = ["FirebaseHandles", "initialise_firebase", "load_service_account"]
