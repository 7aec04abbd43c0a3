"""Environment variable helpers."""

from __future__ import annotations

import json
import os
from typing import Any, List, Mapping, Optional

from core.logging import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None or not value.strip():
        logger.debug("Environment variable %s not set. Using default=%s.", key, default)
        return default
    return value.strip()


def env_int(key: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
        if minimum is not None and value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %d.", key, raw, default)
        return default


def env_float(key: str, default: float, *, minimum: Optional[float] = None) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
        if minimum is not None and value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %.2f.", key, raw, default)
        return default


def env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    logger.warning("Invalid boolean env %s='%s'. Using default=%s.", key, raw, default)
    return default


def env_list(key: str, default: Optional[List[str]] = None) -> List[str]:
    """Split a comma-separated variable into trimmed, non-empty items."""
    raw = os.getenv(key)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def env_json_object(key: str) -> Optional[Mapping[str, Any]]:
    """Decode a JSON object stored in an environment variable.

    Returns ``None`` when the variable is unset or does not hold a JSON object;
    decode failures are logged without echoing the (possibly secret) value.
    """
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Environment variable %s is not valid JSON: %s", key, exc.msg)
        return None
    if not isinstance(payload, dict):
        logger.error("Environment variable %s must contain a JSON object.", key)
        return None
    return payload


__all__ = ["env_bool", "env_float", "env_int", "env_json_object", "env_list", "env_str"]
