"""
Baseline and Regression Domain Models.

A BaselineRecord is persisted externally and overwritten wholesale on
regeneration. A RegressionComparison is derived on demand from a fresh result
and a loaded baseline; it is never stored or cached.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class EnvironmentInfo:
    """Where a baseline was produced."""
    is_ci: bool = False
    ci_provider: Optional[str] = None
    is_container: bool = False
    platform: str = ""
    processor_count: int = 0
    available_memory_bytes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "ci": self.is_ci,
            "ci_provider": self.ci_provider,
            "container": self.is_container,
            "platform": self.platform,
            "processor_count": self.processor_count,
            "available_memory_bytes": self.available_memory_bytes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnvironmentInfo":
        """Deserialize from dictionary."""
        return cls(
            is_ci=bool(data.get("ci", False)),
            ci_provider=data.get("ci_provider"),
            is_container=bool(data.get("container", False)),
            platform=data.get("platform", ""),
            processor_count=int(data.get("processor_count", 0)),
            available_memory_bytes=data.get("available_memory_bytes"),
        )


@dataclass(frozen=True)
class TestSummary:
    """Counts and durations of a baseline run; ``tests`` maps test name to duration."""
    __test__ = False

    total: int
    passed: int
    failed: int
    skipped: int
    duration: float
    tests: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": self.duration,
            "tests": dict(self.tests),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestSummary":
        """Deserialize from dictionary."""
        return cls(
            total=int(data["total"]),
            passed=int(data["passed"]),
            failed=int(data["failed"]),
            skipped=int(data["skipped"]),
            duration=float(data["duration"]),
            tests={str(k): float(v) for k, v in data.get("tests", {}).items()},
        )


@dataclass(frozen=True)
class BaselinePerformance:
    """Optional performance block of a baseline document."""
    duration: float
    peak_memory_mb: Optional[float] = None
    average_memory_mb: Optional[float] = None
    cpu_usage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "duration": self.duration,
            "peak_memory_mb": self.peak_memory_mb,
            "average_memory_mb": self.average_memory_mb,
            "cpu_usage": self.cpu_usage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaselinePerformance":
        """Deserialize from dictionary."""
        return cls(
            duration=float(data.get("duration", 0.0)),
            peak_memory_mb=data.get("peak_memory_mb"),
            average_memory_mb=data.get("average_memory_mb"),
            cpu_usage=data.get("cpu_usage"),
        )


@dataclass(frozen=True)
class BaselineRecord:
    """
    Stored reference run used for regression comparison.

    Attributes:
        generated_at: When the baseline was produced
        test_summary: Counts, total duration and per-test durations
        performance: Optional resource usage block
        environment: Machine descriptor at generation time
    """
    generated_at: datetime
    test_summary: TestSummary
    performance: Optional[BaselinePerformance] = None
    environment: EnvironmentInfo = field(default_factory=EnvironmentInfo)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "test_summary": self.test_summary.to_dict(),
            "performance": self.performance.to_dict() if self.performance else None,
            "environment": self.environment.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaselineRecord":
        """Deserialize from dictionary."""
        performance = data.get("performance")
        return cls(
            generated_at=datetime.fromisoformat(data["generated_at"]),
            test_summary=TestSummary.from_dict(data["test_summary"]),
            performance=BaselinePerformance.from_dict(performance) if performance else None,
            environment=EnvironmentInfo.from_dict(data.get("environment") or {}),
        )


@dataclass(frozen=True)
class TestDurationChange:
    """Duration change of one test present in both the current run and the baseline."""
    __test__ = False

    name: str
    baseline_duration: float
    current_duration: float
    change_percent: float

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "baseline_duration": self.baseline_duration,
            "current_duration": self.current_duration,
            "change_percent": self.change_percent,
        }


@dataclass(frozen=True)
class RegressionComparison:
    """
    Result of comparing a fresh run against a baseline.

    ``is_regression`` is set when the overall duration grew by more than the
    threshold percentage; ``is_improvement`` when it shrank by more than it.
    """
    duration_change_percent: float
    is_regression: bool
    is_improvement: bool
    threshold: float
    baseline_duration: float
    current_duration: float
    per_test_regressions: List[TestDurationChange] = field(default_factory=list)
    per_test_improvements: List[TestDurationChange] = field(default_factory=list)
    memory_change_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "duration_change_percent": self.duration_change_percent,
            "is_regression": self.is_regression,
            "is_improvement": self.is_improvement,
            "threshold": self.threshold,
            "baseline_duration": self.baseline_duration,
            "current_duration": self.current_duration,
            "per_test_regressions": [c.to_dict() for c in self.per_test_regressions],
            "per_test_improvements": [c.to_dict() for c in self.per_test_improvements],
            "memory_change_percent": self.memory_change_percent,
        }
