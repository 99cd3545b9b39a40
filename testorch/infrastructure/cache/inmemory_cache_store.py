"""In-memory ICacheStore for tests and single-process use."""

import threading
from typing import Dict, Optional

from testorch.domain.interfaces.cache_store import ICacheStore
from testorch.domain.models.cache import CacheEntry


class InMemoryCacheStore(ICacheStore):
    """Thread-safe dictionary-backed store; contents die with the process."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def save(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
