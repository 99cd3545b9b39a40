"""
JSON File Cache Store.

One JSON document per cache key under ``cache_dir``. Writes go to a temporary
file in the same directory, are fsynced, and replace the target with
``os.replace`` so readers see either the old or the new entry, never a torn one.

Concurrent writers against the same directory race; the last rename wins.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from testorch.domain.errors import CacheFault
from testorch.domain.interfaces.cache_store import ICacheStore
from testorch.domain.models.cache import CacheEntry

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class FileCacheStore(ICacheStore):
    """
    File-backed ICacheStore.

    Usage:
        store = FileCacheStore(".testorch/cache")
        store.save(entry)
        entry = store.load(key)  # None if missing or corrupt
    """

    def __init__(self, cache_dir: Union[str, Path]):
        self._cache_dir = Path(cache_dir)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def _path_for(self, key: str) -> Path:
        return self._cache_dir / f"{key}{_SUFFIX}"

    def load(self, key: str) -> Optional[CacheEntry]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            entry = CacheEntry.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            # Truncated or corrupt entries read as a miss
            logger.warning(f"Ignoring unreadable cache entry {path}: {e}")
            return None
        if entry.key != key:
            logger.warning(f"Cache entry {path} belongs to key {entry.key}, ignoring")
            return None
        return entry

    def save(self, entry: CacheEntry) -> None:
        payload = json.dumps(entry.to_dict(), sort_keys=True, indent=2)
        tmp_name = None
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._cache_dir, prefix=f".{entry.key}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path_for(entry.key))
            tmp_name = None
        except OSError as e:
            raise CacheFault(f"Failed to write cache entry {entry.key}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
        logger.debug(f"Stored cache entry {entry.key} ({len(entry.file_digests)} files)")

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheFault(f"Failed to delete cache entry {key}: {e}") from e
        return True

    def clear(self) -> int:
        if not self._cache_dir.exists():
            return 0
        removed = 0
        for path in self._cache_dir.glob(f"*{_SUFFIX}"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove cache entry {path}: {e}")
        return removed

    def count(self) -> int:
        if not self._cache_dir.exists():
            return 0
        return sum(1 for _ in self._cache_dir.glob(f"*{_SUFFIX}"))
