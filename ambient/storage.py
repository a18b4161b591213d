"""
Injected key/value persistence.

Views and services receive a KeyValueStore instead of reaching for shared
global storage. Values are JSON-serializable.
"""
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import json
import logging
import threading

logger = logging.getLogger(__name__)


class KeyValueStore:
    """get/set/remove scoped by key."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def scoped(self, prefix: str) -> "ScopedStore":
        return ScopedStore(self, prefix)


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Dict[str, Any] | None = None):
        self._data: Dict[str, Any] = {}
        for k, v in (initial or {}).items():
            self.set(k, v)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        # hand out copies so callers never mutate stored state in place
        return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Whole store kept in one JSON object on disk, rewritten on every change."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            logger.exception(f"[store] corrupt store file {self.path}; starting empty")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return json.loads(json.dumps(self._data[key]))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = json.loads(json.dumps(value))
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._write()


class ScopedStore(KeyValueStore):
    """View of another store with every key prefixed by ``<prefix>:``."""

    def __init__(self, inner: KeyValueStore, prefix: str):
        self._inner = inner
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str, default: Any = None) -> Any:
        return self._inner.get(self._key(key), default)

    def set(self, key: str, value: Any) -> None:
        self._inner.set(self._key(key), value)

    def remove(self, key: str) -> None:
        self._inner.remove(self._key(key))


def store_from_settings(path: str) -> KeyValueStore:
    return JsonFileStore(path) if path else MemoryStore()
