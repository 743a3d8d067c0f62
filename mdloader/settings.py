"""Key-value settings stores consumed by the session manager and endpoints."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Mapping

log = logging.getLogger(__name__)


class MemorySettingsStore:
    """Settings store kept only in memory, seeded from ``defaults``."""

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(defaults or {}))

    def get(self, key: str) -> Any:
        """Return the stored value for ``key`` or ``None``."""
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        self._data[key] = copy.deepcopy(value)


class JsonSettingsStore(MemorySettingsStore):
    """
    Settings store backed by one JSON file.

    Missing or unreadable files fall back to ``defaults``; every ``set``
    rewrites the whole file.
    """

    def __init__(self, path: str | Path, defaults: Mapping[str, Any] | None = None) -> None:
        super().__init__(defaults)
        self.path = Path(path)
        self._data.update(self._read_file())

    def _read_file(self) -> dict[str, Any]:
        """Load persisted values, returning an empty mapping when unavailable."""
        try:
            with self.path.open("r", encoding="utf-8") as file_obj:
                stored = json.load(file_obj)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return {}
        if not isinstance(stored, dict):
            log.warning("Ignoring settings file %s: expected a JSON object", self.path)
            return {}
        return stored

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` and write the settings file."""
        super().set(key, value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as file_obj:
            json.dump(self._data, file_obj, ensure_ascii=False, indent=4)
