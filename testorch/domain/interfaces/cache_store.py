"""
Cache Store Interface.

Persistence contract for fingerprint cache entries. Implementations must make
``save`` atomic: a crash mid-write may lose the new entry but must never leave
behind a partial entry that ``load`` returns as valid.

Any read problem (missing, truncated, corrupt) is reported as ``None`` by
``load``; write problems raise CacheFault and the cache layer absorbs them.
"""

from abc import ABC, abstractmethod
from typing import Optional

from testorch.domain.models.cache import CacheEntry


class ICacheStore(ABC):
    """Keyed storage for CacheEntry records (last writer wins)."""

    @abstractmethod
    def load(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry for ``key`` or None if absent or unreadable."""
        ...

    @abstractmethod
    def save(self, entry: CacheEntry) -> None:
        """
        Persist ``entry`` atomically, replacing any previous entry for its key.

        Raises:
            CacheFault: If the entry could not be written
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the entry for ``key``; return True if one existed."""
        ...

    @abstractmethod
    def clear(self) -> int:
        """Remove all entries; return how many were removed."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Number of stored entries."""
        ...
