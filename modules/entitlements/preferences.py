"""
Preferences store implementations.

- InMemoryPreferencesStore: dict-backed, for tests and previews
- JSONFilePreferencesStore: a single JSON object on disk
"""

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class InMemoryPreferencesStore:
    """Preferences store with in-memory storage."""

    def __init__(self):
        self._values: dict[str, int] = {}

    def get_int(self, key: str) -> int:
        return self._values.get(key, 0)

    def set_int(self, key: str, value: int) -> None:
        self._values[key] = int(value)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> set[str]:
        return set(self._values)


class JSONFilePreferencesStore:
    """
    Preferences persisted as one JSON object.

    The file is read once and rewritten on every change. An unreadable file
    is treated as empty.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._values = self._read()

    def _read(self) -> dict[str, int]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read preferences from {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {self._path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, int)}

    def _write(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        except OSError as e:
            logger.error(f"Could not save preferences to {self._path}: {e}")
            return
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._values, f, indent=2)
            os.replace(tmp_name, self._path)
        except OSError as e:
            logger.error(f"Could not save preferences to {self._path}: {e}")
        finally:
            # No-op once os.replace() has moved it
            Path(tmp_name).unlink(missing_ok=True)

    def get_int(self, key: str) -> int:
        return self._values.get(key, 0)

    def set_int(self, key: str, value: int) -> None:
        self._values[key] = int(value)
        self._write()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._write()
