"""Key-Value Stores - The persistence gateway and its local backends.

The session only ever talks to storage through the KeyValueStore contract.
Writes log failures and return False; reads raise PersistenceError so callers
can tell an absent key from an unreadable one.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..core.errors import PersistenceError


logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Durable string store keyed by string."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> bool: ...

    def remove(self, key: str) -> bool: ...


class InMemoryStore:
    """Process-local store. Durable only for the life of the object."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def remove(self, key: str) -> bool:
        with self._lock:
            self._data.pop(key, None)
        return True

    def snapshot(self) -> dict[str, str]:
        """Copy of the stored data, for inspection."""
        with self._lock:
            return dict(self._data)


@dataclass
class FileStoreConfig:
    """Configuration for the JSON file store.

    Attributes:
        path: Location of the JSON document holding every key
    """

    path: Path = Path("scripture_scroll.json")


class JsonFileStore:
    """On-device store keeping all keys in a single JSON object.

    Every write rewrites the file through a temporary sibling and an atomic
    rename, so a crash mid-write leaves the previous contents intact.
    """

    def __init__(self, config: FileStoreConfig | None = None) -> None:
        self.config = config or FileStoreConfig()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return Path(self.config.path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Cannot read {self.path}: not a JSON object")
        return data

    def _read_for_write(self) -> dict[str, str]:
        """Current contents, or {} after moving an unreadable file aside."""
        try:
            return self._read_all()
        except PersistenceError as e:
            corrupt_path = self.path.with_name(self.path.name + ".corrupt")
            logger.error("Discarding unreadable store, moved to %s: %s", corrupt_path, str(e))
            os.replace(self.path, corrupt_path)
            return {}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> str | None:
        logger.debug("Reading key %s from %s", key, self.path)
        with self._lock:
            value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            return json.dumps(value)
        return value

    def set(self, key: str, value: str) -> bool:
        try:
            with self._lock:
                data = self._read_for_write()
                data[key] = value
                self._write_all(data)
            return True
        except (OSError, PersistenceError) as e:
            logger.error("Failed to save key %s: %s", key, str(e))
            return False

    def remove(self, key: str) -> bool:
        try:
            with self._lock:
                data = self._read_for_write()
                if data.pop(key, None) is not None:
                    self._write_all(data)
            return True
        except (OSError, PersistenceError) as e:
            logger.error("Failed to remove key %s: %s", key, str(e))
            return False
