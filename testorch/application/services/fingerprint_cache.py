"""
Fingerprint Cache.

Maps a set of input file paths to a previously computed TestResult, keyed by
a digest of the files' contents.

Contract:
    lookup(paths) -> CacheEntry | None      None is a miss, never an error
    store(paths, result) -> CacheEntry | None

Caching is advisory. Every failure on the read side degrades to a miss and
every failure on the write side is logged; neither ever aborts a run.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from testorch.domain.errors import CacheFault
from testorch.domain.interfaces.cache_store import ICacheStore
from testorch.domain.models.cache import CacheEntry
from testorch.domain.models.results import TestResult
from testorch.infrastructure.cache.fingerprint import compute_cache_key, compute_fingerprint

logger = logging.getLogger(__name__)


class FingerprintCache:
    """
    Content-addressed result cache over an ICacheStore.

    Usage:
        cache = FingerprintCache(FileCacheStore(".testorch/cache"))
        entry = cache.lookup(paths)
        if entry is None:
            result = run()
            cache.store(paths, result)
    """

    def __init__(self, store: ICacheStore):
        self._store = store

    @property
    def backend(self) -> ICacheStore:
        return self._store

    def lookup(self, paths: Sequence[str], force: bool = False) -> Optional[CacheEntry]:
        """
        Return the cached entry if it is still valid for the current file contents.

        Args:
            paths: Input paths of the work
            force: Forced invalidation; always a miss, storage is not touched

        Returns:
            The valid CacheEntry, or None on any kind of miss
        """
        if force:
            logger.debug("Cache bypassed by forced invalidation")
            return None

        key = compute_cache_key(paths)
        try:
            entry = self._store.load(key)
        except (CacheFault, OSError) as e:
            logger.warning(f"Cache read failed for key {key}: {e}")
            return None
        if entry is None:
            logger.debug(f"Cache miss for key {key}: no entry")
            return None

        try:
            current = compute_fingerprint(paths)
        except OSError as e:
            # Includes FileNotFoundError for removed inputs
            logger.info(f"Cache miss for key {key}: cannot fingerprint inputs ({e})")
            return None

        if not entry.matches(current):
            logger.info(f"Cache miss for key {key}: inputs changed since {entry.timestamp.isoformat()}")
            return None

        logger.info(f"Cache hit for key {key} (fingerprint {current.digest[:12]})")
        return entry

    def store(self, paths: Sequence[str], result: TestResult) -> Optional[CacheEntry]:
        """
        Fingerprint the inputs and persist ``result`` with that fingerprint.

        Overwrites any previous entry for the same path set.

        Returns:
            The stored entry, or None if it could not be persisted
        """
        key = compute_cache_key(paths)
        try:
            fingerprint = compute_fingerprint(paths)
        except OSError as e:
            logger.warning(f"Not caching result for key {key}: cannot fingerprint inputs ({e})")
            return None

        entry = CacheEntry(
            key=key,
            fingerprint=fingerprint.digest,
            file_digests=dict(fingerprint.file_digests),
            result=result,
            timestamp=datetime.now(),
        )
        try:
            self._store.save(entry)
        except (CacheFault, OSError) as e:
            logger.warning(f"Cache write failed for key {key}: {e}")
            return None
        return entry

    def invalidate(self, paths: Sequence[str]) -> bool:
        """Drop the entry for this path set; return True if one existed."""
        key = compute_cache_key(paths)
        try:
            return self._store.delete(key)
        except (CacheFault, OSError) as e:
            logger.warning(f"Cache invalidation failed for key {key}: {e}")
            return False

    def clear(self) -> int:
        """Drop every entry; return how many were removed."""
        removed = self._store.clear()
        logger.info(f"Cleared {removed} cache entries")
        return removed
