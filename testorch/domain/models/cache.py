"""
Fingerprint Cache Domain Model.

A CacheEntry is valid if and only if recomputing the fingerprint over the
current file contents yields an identical digest. Entries are created on the
first successful run and overwritten (never merged) on every later one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from .results import TestResult


@dataclass(frozen=True)
class Fingerprint:
    """
    Content digest of a set of input files.

    Attributes:
        digest: Hex SHA-256 over the path-sorted per-file digests
        file_digests: path -> hex SHA-256 of that file's content
    """
    digest: str
    file_digests: Dict[str, str] = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return len(self.file_digests)


@dataclass(frozen=True)
class CacheEntry:
    """
    Persisted cache record.

    Attributes:
        key: Identifier of the input path set (not of its content)
        fingerprint: Hex digest of the inputs when the result was produced
        file_digests: Per-file digests backing the fingerprint
        result: Cached TestResult payload
        timestamp: When the entry was written
    """
    key: str
    fingerprint: str
    file_digests: Dict[str, str]
    result: TestResult
    timestamp: datetime = field(default_factory=datetime.now)

    def matches(self, fingerprint: Fingerprint) -> bool:
        """Check whether the entry was produced from exactly these inputs."""
        return (
            self.fingerprint == fingerprint.digest
            and self.file_digests == fingerprint.file_digests
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "key": self.key,
            "fingerprint": self.fingerprint,
            "file_digests": dict(self.file_digests),
            "timestamp": self.timestamp.isoformat(),
            "result": self.result.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        """Deserialize from dictionary; raises KeyError/ValueError on malformed data."""
        return cls(
            key=data["key"],
            fingerprint=data["fingerprint"],
            file_digests=dict(data["file_digests"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            result=TestResult.from_dict(data["result"]),
        )
