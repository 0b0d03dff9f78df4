"""
Key-value storage port and the JSON adapter on top of it.

Every collection is stored under one key as JSON text. The port only moves
strings; :class:`PersistentStore` handles encoding and falls back to a default
when a key is missing or holds text that is not valid JSON.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class StoragePort(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the raw value for a key, or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a raw value."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""
        pass


class InMemoryStorage(StoragePort):
    """Dictionary-backed storage, mostly for tests and dry runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def snapshot(self) -> Dict[str, str]:
        return dict(self._data)


class JsonFileStorage(StoragePort):
    """
    Storage persisted as a single JSON object on disk.

    The file maps each key to its raw string value. Writes go to a temporary
    file in the same directory and are moved into place, so a crash never
    leaves a half-written store.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Store file {self.path} is not valid JSON, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Store file {self.path} does not hold an object, starting empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._flush()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())


class PersistentStore:
    """JSON encoding layer over a :class:`StoragePort`."""

    def __init__(self, port: StoragePort):
        self.port = port

    def load(self, key: str, default: Any) -> Any:
        """Decode a key, returning ``default`` if it is absent or unreadable."""
        raw = self.port.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON under key '{key}', using default: {e}")
            return default

    def save(self, key: str, value: Any) -> None:
        self.port.set(key, json.dumps(value, ensure_ascii=False))

    def get_raw(self, key: str) -> Optional[str]:
        return self.port.get(key)

    def set_raw(self, key: str, value: str) -> None:
        self.port.set(key, value)

    def remove(self, key: str) -> None:
        self.port.remove(key)

    def keys(self) -> List[str]:
        return self.port.keys()
