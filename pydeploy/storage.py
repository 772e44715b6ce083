"""Persistent key-value storage for deployment targets and snapshots."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Key-value store holding small JSON-compatible values."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class JsonStorage:
    """Storage provider backed by a single JSON file.

    Each ``set`` rewrites the whole file. Writes from several processes are
    last-writer-wins.
    """

    def __init__(self, path: Path):
        """Initialize storage.

        Args:
            path: JSON file to read and write
        """
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed storage file {self.path}")
            return {}
        return data

    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key`` or None."""
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        with self._lock:
            data = self._read()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self.path)
            logger.debug(f"Stored '{key}' in {self.path}")


class MemoryStorage:
    """In-process storage provider, used when nothing must outlive the run."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        # Values are copied in and out
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))
