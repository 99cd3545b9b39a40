"""
Test Result Domain Models.

A TestResult is produced once per successful worker execution and is immutable
afterwards. It is handed by value to the result aggregator and to the
fingerprint cache, which persists it as the cached payload.

Invariant:
    total == passed + failed + skipped + inconclusive + not_run
    duration >= 0
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


class TestOutcome(Enum):
    """Outcome of a single test case."""
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    INCONCLUSIVE = "inconclusive"
    NOT_RUN = "not_run"


@dataclass(frozen=True)
class TestRecord:
    """
    Per-test record reported by the test framework.

    Attributes:
        name: Fully qualified test name (unique within a run)
        file: Source file the test lives in
        outcome: Passed, failed, skipped, ...
        duration: Seconds spent in the test
        error_message: Failure message, if any
    """
    __test__ = False

    name: str
    file: str
    outcome: TestOutcome
    duration: float = 0.0
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "file": self.file,
            "outcome": self.outcome.value,
            "duration": self.duration,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestRecord":
        """Deserialize from dictionary."""
        return cls(
            name=data["name"],
            file=data.get("file", ""),
            outcome=TestOutcome(data["outcome"]),
            duration=float(data.get("duration", 0.0)),
            error_message=data.get("error_message"),
        )


@dataclass(frozen=True)
class TestResult:
    """
    Aggregate result of one test run.

    Counts are validated on construction; an inconsistent result is a bug in
    the test framework adapter and is rejected with ValueError.
    """
    __test__ = False

    total: int
    passed: int
    failed: int
    skipped: int
    duration: float
    records: Tuple[TestRecord, ...] = field(default_factory=tuple)
    inconclusive: int = 0
    not_run: int = 0

    def __post_init__(self):
        if isinstance(self.records, list):
            object.__setattr__(self, "records", tuple(self.records))
        counts = (self.total, self.passed, self.failed, self.skipped, self.inconclusive, self.not_run)
        if any(c < 0 for c in counts):
            raise ValueError(f"Test counts must be non-negative: {counts}")
        accounted = self.passed + self.failed + self.skipped + self.inconclusive + self.not_run
        if accounted != self.total:
            raise ValueError(
                f"Test counts do not add up: total={self.total}, accounted={accounted}"
            )
        if self.duration < 0:
            raise ValueError(f"Duration must be >= 0, got {self.duration}")

    @classmethod
    def from_records(cls, records: Iterable[TestRecord], duration: Optional[float] = None) -> "TestResult":
        """
        Build a result by counting per-test outcomes.

        Args:
            records: Per-test records
            duration: Wall-clock duration; defaults to the sum of test durations

        Returns:
            TestResult whose counts are consistent by construction
        """
        records = tuple(records)
        counts = {outcome: 0 for outcome in TestOutcome}
        for record in records:
            counts[record.outcome] += 1
        if duration is None:
            duration = sum(r.duration for r in records)
        return cls(
            total=len(records),
            passed=counts[TestOutcome.PASSED],
            failed=counts[TestOutcome.FAILED],
            skipped=counts[TestOutcome.SKIPPED],
            inconclusive=counts[TestOutcome.INCONCLUSIVE],
            not_run=counts[TestOutcome.NOT_RUN],
            duration=max(0.0, duration),
            records=records,
        )

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def failure_rate(self) -> float:
        """Fraction of failed tests; 0 when nothing ran."""
        if self.total == 0:
            return 0.0
        return self.failed / self.total

    def durations_by_name(self) -> Dict[str, float]:
        """Map of test name to duration."""
        return {r.name: r.duration for r in self.records}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "inconclusive": self.inconclusive,
            "not_run": self.not_run,
            "duration": self.duration,
            "records": [r.to_dict() for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestResult":
        """Deserialize from dictionary."""
        return cls(
            total=int(data["total"]),
            passed=int(data["passed"]),
            failed=int(data["failed"]),
            skipped=int(data["skipped"]),
            inconclusive=int(data.get("inconclusive", 0)),
            not_run=int(data.get("not_run", 0)),
            duration=float(data["duration"]),
            records=tuple(TestRecord.from_dict(r) for r in data.get("records", [])),
        )
