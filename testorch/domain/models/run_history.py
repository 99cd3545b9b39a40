"""
Run History Domain Model.

Every orchestrated run leaves one RunRecord behind, whether it was served from
the fingerprint cache, completed, timed out or faulted. Records feed the
``history`` command and run statistics.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import uuid


class RunStatus(Enum):
    """Terminal status of an orchestrated run."""
    CACHED = "cached"
    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    FAULTED = "faulted"


@dataclass
class RunRecord:
    """
    Run History Entity.

    Attributes:
        id: Database primary key (auto-generated)
        run_id: UUID of the run
        name: WorkSpec name
        status: Terminal status
        started_at / finished_at: Wall-clock bounds of the run
        total / passed / failed / skipped: Test counts (zero when no result)
        duration: Test duration reported by the framework
        attempts: Attempts made by the retry coordinator (0 on cache hit)
        from_cache: Result was served from the fingerprint cache
        fingerprint: Input fingerprint, if it could be computed
        peak_memory_bytes: Peak memory of the worker, if monitored
        error: Description of the surfaced error, if any
    """

    id: Optional[int] = None
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    status: RunStatus = RunStatus.PASSED
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    attempts: int = 0
    from_cache: bool = False
    fingerprint: Optional[str] = None
    peak_memory_bytes: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "run_id": self.run_id,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": self.duration,
            "attempts": self.attempts,
            "from_cache": self.from_cache,
            "fingerprint": self.fingerprint,
            "peak_memory_bytes": self.peak_memory_bytes,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunRecord":
        """Create from dictionary."""
        return cls(
            id=data.get("id"),
            run_id=data.get("run_id", str(uuid.uuid4())),
            name=data.get("name", ""),
            status=RunStatus(data.get("status", "passed")),
            started_at=datetime.fromisoformat(data["started_at"]) if data.get("started_at") else datetime.now(),
            finished_at=datetime.fromisoformat(data["finished_at"]) if data.get("finished_at") else None,
            total=data.get("total", 0),
            passed=data.get("passed", 0),
            failed=data.get("failed", 0),
            skipped=data.get("skipped", 0),
            duration=data.get("duration", 0.0),
            attempts=data.get("attempts", 0),
            from_cache=data.get("from_cache", False),
            fingerprint=data.get("fingerprint"),
            peak_memory_bytes=data.get("peak_memory_bytes"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class RunStatistics:
    """Aggregate statistics over the stored run history."""
    total_runs: int = 0
    cache_hits: int = 0
    passed_runs: int = 0
    failed_runs: int = 0
    timed_out_runs: int = 0
    faulted_runs: int = 0
    average_duration: float = 0.0

    @property
    def cache_hit_rate(self) -> float:
        if self.total_runs == 0:
            return 0.0
        return self.cache_hits / self.total_runs

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "total_runs": self.total_runs,
            "cache_hits": self.cache_hits,
            "cache_hit_rate": self.cache_hit_rate,
            "passed_runs": self.passed_runs,
            "failed_runs": self.failed_runs,
            "timed_out_runs": self.timed_out_runs,
            "faulted_runs": self.faulted_runs,
            "average_duration": self.average_duration,
        }
