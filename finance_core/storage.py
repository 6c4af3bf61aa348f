"""Persistence utilities for the student finance core services."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from .exceptions import PersistenceError
from .logging_setup import get_logger

logger = get_logger(__name__)

RECORDS_KEY = "records.json"
SETTINGS_KEY = "settings.json"


class JSONStorage:
    """File-backed string-keyed JSON store with crash-safe writes.

    Each key maps to one JSON document inside ``base_path``.
    """

    write_attempts = 2

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)

    def load(self, key: str, default: Any = None) -> Any:
        path = self._base_path / key
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupted JSON data in {path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read from {path}") from exc

    def save(self, key: str, payload: Any) -> None:
        """Write ``payload`` under ``key``; retries once before raising PersistenceError."""
        path = self._base_path / key
        temp_path = path.with_suffix(path.suffix + ".tmp")
        last_error: Optional[OSError] = None
        for attempt in range(1, self.write_attempts + 1):
            try:
                self._write(temp_path, payload)
                # Use replace for atomic move on POSIX; ensures crash-safe persistence.
                temp_path.replace(path)
                return
            except OSError as exc:
                last_error = exc
                logger.warning("Write to %s failed (attempt %d): %s", path, attempt, exc)
        raise PersistenceError(f"Unable to write to {path}") from last_error

    @staticmethod
    def _write(path: Path, payload: Any) -> None:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.flush()

    @property
    def base_path(self) -> Path:
        return self._base_path
