"""Quality report produced by the result aggregator."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .performance import PerformanceSummary
from .results import TestResult


@dataclass(frozen=True)
class QualityReport:
    """
    Derived scores for one run.

    Attributes:
        result: The TestResult the report was computed from
        performance: Resource usage of the run, if it was monitored
        success_rate: passed / total on a 0-100 percent scale, like stability_score
            (0 when nothing ran)
        performance_score: 100 minus deductions from the threshold table
        performance_grade: A/B/C/D/F derived from performance_score
        stability_score: (1 - failure rate) * 100 plus test-count bonus, in [0, 100]
        generated_at: When the report was computed
    """
    result: TestResult
    performance: Optional[PerformanceSummary]
    success_rate: float
    performance_score: float
    performance_grade: str
    stability_score: float
    generated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "summary": {
                "total": self.result.total,
                "passed": self.result.passed,
                "failed": self.result.failed,
                "skipped": self.result.skipped,
                "inconclusive": self.result.inconclusive,
                "not_run": self.result.not_run,
                "duration": self.result.duration,
            },
            "success_rate": self.success_rate,
            "performance_score": self.performance_score,
            "performance_grade": self.performance_grade,
            "stability_score": self.stability_score,
            "performance": self.performance.to_dict() if self.performance else None,
            "failures": [
                r.to_dict() for r in self.result.records if r.error_message is not None
            ],
        }
