"""Small JSON mapping persisted on disk, re-read on every access."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


class JsonStateStore:
    """Persist a keyed JSON mapping under ``root_key``.

    No in-process cache is kept: several workers may share the file, so each
    read-modify-write cycle must start from the latest on-disk state.
    """

    def __init__(self, path: Path, root_key: str, *, logger: Optional[logging.Logger] = None) -> None:
        self._path = Path(path)
        self._root_key = root_key
        self._logger = logger or logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Dict[str, Any]]:
        """Load the mapping; unreadable or malformed files yield an empty mapping."""

        try:
            raw = self._path.read_text(encoding="utf-8")
            payload = json.loads(raw)
            items = payload.get(self._root_key, {}) if isinstance(payload, dict) else None
            if not isinstance(items, dict):
                raise ValueError("root is not an object")
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError, ValueError) as exc:
            self._logger.warning("Failed to load state from %s: %s", self._path, exc)
            return {}
        return {str(key): dict(value) for key, value in items.items() if isinstance(value, Mapping)}

    def store(self, items: Mapping[str, Mapping[str, Any]]) -> None:
        """Persist ``items`` atomically (temporary file + rename)."""

        payload = {self._root_key: {key: dict(value) for key, value in items.items()}}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["JsonStateStore"]
