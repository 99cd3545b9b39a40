"""
Tests for the TestResult value object and its totals invariant.

Run with: pytest tests/test_results.py -v
"""

import pytest

from testorch.domain.models.results import TestOutcome, TestRecord, TestResult


def _record(index: int, outcome: TestOutcome, duration: float = 0.5) -> TestRecord:
    return TestRecord(
        name=f"tests/test_mixed.py::test_{index}",
        file="tests/test_mixed.py",
        outcome=outcome,
        duration=duration,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Totals invariant
# ═══════════════════════════════════════════════════════════════════════════════


class TestTotalsInvariant:
    """total == passed + failed + skipped + inconclusive + not_run."""

    def test_consistent_counts_accepted(self):
        result = TestResult(
            total=10, passed=5, failed=2, skipped=1, inconclusive=1, not_run=1, duration=3.0
        )

        assert result.total == 10

    @pytest.mark.parametrize("counts", [
        dict(total=10, passed=5, failed=2, skipped=1),
        dict(total=3, passed=2, failed=1, skipped=1),
        dict(total=4, passed=2, failed=0, skipped=0, inconclusive=1, not_run=2),
    ])
    def test_mismatched_counts_rejected(self, counts):
        with pytest.raises(ValueError, match="do not add up"):
            TestResult(duration=1.0, **counts)

    @pytest.mark.parametrize("counts", [
        dict(total=0, passed=1, failed=-1, skipped=0),
        dict(total=-1, passed=0, failed=0, skipped=0, not_run=-1),
        dict(total=1, passed=1, failed=0, skipped=0, inconclusive=-1, not_run=1),
    ])
    def test_negative_counts_rejected(self, counts):
        with pytest.raises(ValueError, match="non-negative"):
            TestResult(duration=1.0, **counts)

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError, match="Duration"):
            TestResult(total=1, passed=1, failed=0, skipped=0, duration=-0.1)


# ═══════════════════════════════════════════════════════════════════════════════
# Construction from records
# ═══════════════════════════════════════════════════════════════════════════════


class TestFromRecords:

    def test_every_outcome_is_counted(self):
        outcomes = [
            TestOutcome.PASSED, TestOutcome.PASSED, TestOutcome.FAILED,
            TestOutcome.SKIPPED, TestOutcome.INCONCLUSIVE,
            TestOutcome.NOT_RUN, TestOutcome.NOT_RUN,
        ]

        result = TestResult.from_records([_record(i, o) for i, o in enumerate(outcomes)])

        assert (result.passed, result.failed, result.skipped) == (2, 1, 1)
        assert result.inconclusive == 1
        assert result.not_run == 2
        assert result.total == 7
        assert result.duration == pytest.approx(3.5)

    def test_explicit_duration_wins(self):
        result = TestResult.from_records([_record(0, TestOutcome.PASSED)], duration=9.0)

        assert result.duration == 9.0

    def test_no_records_is_empty_result(self):
        result = TestResult.from_records([])

        assert result.total == 0
        assert result.failure_rate == 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# Serialization
# ═══════════════════════════════════════════════════════════════════════════════


class TestResultSerialization:

    def test_inconclusive_and_not_run_survive_serialization(self):
        result = TestResult.from_records([
            _record(0, TestOutcome.PASSED),
            _record(1, TestOutcome.INCONCLUSIVE),
            _record(2, TestOutcome.NOT_RUN),
        ])

        data = result.to_dict()
        restored = TestResult.from_dict(data)

        assert data["inconclusive"] == 1
        assert data["not_run"] == 1
        assert restored == result

    def test_documents_without_extra_counts_load(self):
        restored = TestResult.from_dict(
            {"total": 2, "passed": 1, "failed": 1, "skipped": 0, "duration": 0.4}
        )

        assert restored.inconclusive == 0
        assert restored.not_run == 0
        assert restored.records == ()

    def test_inconsistent_document_rejected(self):
        with pytest.raises(ValueError):
            TestResult.from_dict(
                {"total": 5, "passed": 1, "failed": 1, "skipped": 0, "duration": 0.4}
            )
