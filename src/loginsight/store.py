"""Key-value stores for scheduler bookkeeping.

The scheduler performs a read-then-write on every positive decision. In a
concurrent deployment the store shared by several coordinators must make that
sequence atomic, otherwise one window can fire more than once. Both stores here
serialise access with a lock, which covers threads within one process only.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loginsight.errors import StoreUnavailableError

logger = logging.getLogger("loginsight.store")


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def exists(self, key: str) -> bool: ...


class InMemoryKeyValueStore:
    """Process-local store. Bookkeeping is lost when the process exits."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data


class JsonFileKeyValueStore:
    """Durable store backed by a single JSON object on disk.

    The file is created (with parent directories) on first use and rewritten
    atomically on every `set`.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            previous = dict(self._data)
            self._data[key] = value
            try:
                self._save()
            except StoreUnavailableError:
                self._data = previous
                raise

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def delete_all(self) -> None:
        """Forget every key and remove the backing file."""
        with self._lock:
            self._data = {}
            try:
                self._path.unlink(missing_ok=True)
            except OSError as e:
                raise StoreUnavailableError(f"Failed to delete {self._path}: {e}") from e

    def _load(self) -> dict[str, Any]:
        try:
            if not self._path.exists():
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._path.write_text("{}")
                logger.debug("Created store file %s", self._path)
                return {}
            data = json.loads(self._path.read_text() or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise StoreUnavailableError(f"Failed to load {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreUnavailableError(f"Store file {self._path} does not hold a JSON object")
        return data

    def _save(self) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(self._data, indent=2))
            os.replace(tmp, self._path)
        except (OSError, TypeError) as e:
            raise StoreUnavailableError(f"Failed to write {self._path}: {e}") from e
