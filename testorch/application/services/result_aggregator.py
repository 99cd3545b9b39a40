"""
Result Aggregator.

Turns a raw TestResult plus the resource summary of its run into a
QualityReport, and compares a run against a stored baseline.

Neither operation mutates its inputs; both return new values.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

from testorch.domain.models.baseline import (
    BaselineRecord,
    RegressionComparison,
    TestDurationChange,
)
from testorch.domain.models.performance import PerformanceSummary
from testorch.domain.models.report import QualityReport
from testorch.domain.models.results import TestResult

logger = logging.getLogger(__name__)

# (threshold, deduction) pairs, highest threshold first; the first exceeded applies
DURATION_DEDUCTIONS: Tuple[Tuple[float, float], ...] = (
    (300.0, 30.0),
    (120.0, 20.0),
    (60.0, 10.0),
    (30.0, 5.0),
)
PEAK_MEMORY_MB_DEDUCTIONS: Tuple[Tuple[float, float], ...] = (
    (1024.0, 20.0),
    (512.0, 10.0),
    (256.0, 5.0),
)
CPU_PERCENT_DEDUCTIONS: Tuple[Tuple[float, float], ...] = (
    (90.0, 15.0),
    (75.0, 10.0),
    (50.0, 5.0),
)
GRADE_FLOORS: Tuple[Tuple[float, str], ...] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)
# (minimum test count, stability bonus)
STABILITY_BONUSES: Tuple[Tuple[int, float], ...] = (
    (100, 5.0),
    (50, 3.0),
)

DEFAULT_THRESHOLD = 5.0


def _deduction(value: Optional[float], table: Sequence[Tuple[float, float]]) -> float:
    if value is None:
        return 0.0
    for threshold, points in table:
        if value > threshold:
            return points
    return 0.0


def percent_change(baseline: float, current: float) -> float:
    """Relative change in percent; 0 when the baseline is 0."""
    if baseline == 0:
        return 0.0
    return (current - baseline) / baseline * 100.0


def grade_for(score: float) -> str:
    for floor, grade in GRADE_FLOORS:
        if score >= floor:
            return grade
    return "F"


class ResultAggregator:
    """
    Derives quality scores and regression comparisons.

    Usage:
        aggregator = ResultAggregator()
        report = aggregator.summarize(result, performance)
        comparison = aggregator.compare_to_baseline(report, baseline, threshold=5.0)
    """

    def summarize(
        self,
        result: TestResult,
        performance: Optional[PerformanceSummary] = None,
    ) -> QualityReport:
        """Build the quality report of one run.

        ``success_rate`` is the passed/total ratio expressed in percent.
        """
        success_rate = (result.passed / result.total * 100.0) if result.total else 0.0
        score = self.performance_score(result, performance)
        report = QualityReport(
            result=result,
            performance=performance,
            success_rate=success_rate,
            performance_score=score,
            performance_grade=grade_for(score),
            stability_score=self.stability_score(result),
            generated_at=datetime.now(),
        )
        logger.info(
            f"Run summary: {result.passed}/{result.total} passed "
            f"({success_rate:.1f}%), grade {report.performance_grade}, "
            f"stability {report.stability_score:.1f}"
        )
        return report

    @staticmethod
    def performance_score(
        result: TestResult,
        performance: Optional[PerformanceSummary] = None,
    ) -> float:
        """100 minus the duration, peak memory and CPU deductions, floored at 0."""
        score = 100.0
        score -= _deduction(result.duration, DURATION_DEDUCTIONS)
        if performance is not None:
            score -= _deduction(performance.peak_memory_mb, PEAK_MEMORY_MB_DEDUCTIONS)
            score -= _deduction(performance.average_cpu_percent, CPU_PERCENT_DEDUCTIONS)
        return max(0.0, score)

    @staticmethod
    def stability_score(result: TestResult) -> float:
        score = (1.0 - result.failure_rate) * 100.0
        for minimum, bonus in STABILITY_BONUSES:
            if result.total >= minimum:
                score += bonus
                break
        return min(100.0, max(0.0, score))

    def compare_to_baseline(
        self,
        current: Union[QualityReport, TestResult],
        baseline: BaselineRecord,
        threshold: float = DEFAULT_THRESHOLD,
        performance: Optional[PerformanceSummary] = None,
    ) -> RegressionComparison:
        """
        Compare a run against a baseline.

        A change strictly greater than ``+threshold`` percent is a regression,
        strictly less than ``-threshold`` percent an improvement. Per-test
        changes are computed only for names present in both runs.

        Args:
            current: Report (or bare result) of the run being compared
            baseline: Stored reference run
            threshold: Percent change that counts as significant
            performance: Resource summary, when ``current`` is a bare result
        """
        if isinstance(current, QualityReport):
            result = current.result
            performance = performance or current.performance
        else:
            result = current

        summary = baseline.test_summary
        change = percent_change(summary.duration, result.duration)

        regressions: List[TestDurationChange] = []
        improvements: List[TestDurationChange] = []
        current_durations: Dict[str, float] = result.durations_by_name()
        for name, base_duration in summary.tests.items():
            if name not in current_durations:
                continue
            test_change = TestDurationChange(
                name=name,
                baseline_duration=base_duration,
                current_duration=current_durations[name],
                change_percent=percent_change(base_duration, current_durations[name]),
            )
            if test_change.change_percent > threshold:
                regressions.append(test_change)
            elif test_change.change_percent < -threshold:
                improvements.append(test_change)

        memory_change = None
        if (
            performance is not None
            and performance.peak_memory_mb is not None
            and baseline.performance is not None
            and baseline.performance.peak_memory_mb
        ):
            memory_change = percent_change(
                baseline.performance.peak_memory_mb, performance.peak_memory_mb
            )

        comparison = RegressionComparison(
            duration_change_percent=change,
            is_regression=change > threshold,
            is_improvement=change < -threshold,
            threshold=threshold,
            baseline_duration=summary.duration,
            current_duration=result.duration,
            per_test_regressions=sorted(regressions, key=lambda c: -c.change_percent),
            per_test_improvements=sorted(improvements, key=lambda c: c.change_percent),
            memory_change_percent=memory_change,
        )
        if comparison.is_regression:
            logger.warning(
                f"Duration regression: {change:+.1f}% against baseline "
                f"({summary.duration:.2f}s -> {result.duration:.2f}s)"
            )
        return comparison
