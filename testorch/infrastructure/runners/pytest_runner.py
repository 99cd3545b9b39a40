"""
pytest adapter.

Runs pytest in-process with a collector plugin that turns per-phase reports
into TestRecords. Call it from inside the worker: pytest imports the test
modules into the calling process, so running it in an isolated worker keeps
the supervisor's interpreter clean between attempts.
"""

import logging
import time
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

import pytest

from testorch.domain.errors import ConfigurationError, TransientFailure
from testorch.domain.interfaces.output_sink import IOutputSink
from testorch.domain.interfaces.test_runner import ITestRunner
from testorch.domain.models.results import TestOutcome, TestRecord, TestResult
from testorch.domain.models.work import TestFilter

logger = logging.getLogger(__name__)


def _or_expression(items: Sequence[str]) -> str:
    if len(items) == 1:
        return items[0]
    return "(" + " or ".join(items) + ")"


def build_pytest_args(
    paths: Sequence[str],
    test_filter: TestFilter,
    verbosity: int = 0,
    extra_args: Sequence[str] = (),
) -> List[str]:
    """Translate paths, filter and verbosity into a pytest command line."""
    args: List[str] = list(paths)
    if test_filter.name_patterns:
        args += ["-k", " or ".join(test_filter.name_patterns)]

    markers = []
    if test_filter.include_tags:
        markers.append(_or_expression(test_filter.include_tags))
    if test_filter.exclude_tags:
        markers.append(f"not {_or_expression(test_filter.exclude_tags)}")
    if markers:
        args += ["-m", " and ".join(markers)]

    if verbosity <= 0:
        args += ["-q", "--no-header"]
    else:
        args.append("-" + "v" * min(verbosity, 3))
    args += ["-p", "no:cacheprovider", "--continue-on-collection-errors"]
    args += list(extra_args)
    return args


class ResultCollector:
    """
    pytest plugin that records one TestRecord per test item.

    Setup and teardown errors count as failures; skips and xfails count as
    skipped. Collection errors are recorded as failed items named after the
    module that could not be collected.
    """

    def __init__(self, sink: Optional[IOutputSink] = None, verbosity: int = 0):
        self._sink = sink
        self._verbosity = verbosity
        self._records: "OrderedDict[str, Dict]" = OrderedDict()

    @property
    def records(self) -> List[TestRecord]:
        return [
            TestRecord(
                name=nodeid,
                file=data["file"],
                outcome=data["outcome"],
                duration=data["duration"],
                error_message=data["error"],
            )
            for nodeid, data in self._records.items()
        ]

    def _entry(self, report) -> Dict:
        entry = self._records.get(report.nodeid)
        if entry is None:
            entry = {
                "file": report.location[0] if report.location else report.nodeid.split("::")[0],
                "outcome": TestOutcome.NOT_RUN,
                "duration": 0.0,
                "error": None,
            }
            self._records[report.nodeid] = entry
        return entry

    def _emit(self, line: str) -> None:
        if self._sink is not None:
            self._sink.write(line)

    def pytest_runtest_logreport(self, report) -> None:
        entry = self._entry(report)
        entry["duration"] += getattr(report, "duration", 0.0) or 0.0

        if report.when == "call":
            if report.passed:
                entry["outcome"] = TestOutcome.PASSED
            elif report.skipped:
                entry["outcome"] = TestOutcome.SKIPPED
            else:
                entry["outcome"] = TestOutcome.FAILED
                entry["error"] = report.longreprtext
        elif report.when == "setup":
            if report.skipped:
                entry["outcome"] = TestOutcome.SKIPPED
            elif report.failed:
                entry["outcome"] = TestOutcome.FAILED
                entry["error"] = report.longreprtext
        elif report.when == "teardown":
            if report.failed and entry["outcome"] is not TestOutcome.FAILED:
                entry["outcome"] = TestOutcome.FAILED
                entry["error"] = report.longreprtext
            self._report_finished(report.nodeid, entry)

    def pytest_collectreport(self, report) -> None:
        if not report.failed:
            return
        self._records[report.nodeid] = {
            "file": report.nodeid.split("::")[0],
            "outcome": TestOutcome.FAILED,
            "duration": 0.0,
            "error": report.longreprtext,
        }
        self._emit(f"ERROR collecting {report.nodeid}")

    def _report_finished(self, nodeid: str, entry: Dict) -> None:
        outcome = entry["outcome"]
        if outcome is TestOutcome.FAILED:
            self._emit(f"FAILED {nodeid}")
        elif self._verbosity > 0:
            self._emit(f"{outcome.value.upper()} {nodeid} ({entry['duration']:.3f}s)")


class PytestRunner(ITestRunner):
    """
    ITestRunner backed by ``pytest.main``.

    Attributes:
        extra_args: Additional command line arguments appended to every run
    """

    def __init__(self, extra_args: Sequence[str] = ()):
        self.extra_args = tuple(extra_args)

    def run_tests(
        self,
        paths: Sequence[str],
        test_filter: TestFilter,
        verbosity: int = 0,
        sink: Optional[IOutputSink] = None,
    ) -> TestResult:
        args = build_pytest_args(paths, test_filter, verbosity, self.extra_args)
        collector = ResultCollector(sink, verbosity)
        logger.debug(f"Running pytest {' '.join(args)}")

        start = time.monotonic()
        exit_code = pytest.main(args, plugins=[collector])
        duration = time.monotonic() - start

        if exit_code == pytest.ExitCode.USAGE_ERROR:
            raise ConfigurationError(f"pytest rejected arguments: {' '.join(args)}")
        if exit_code in (pytest.ExitCode.INTERNAL_ERROR, pytest.ExitCode.INTERRUPTED):
            raise TransientFailure(f"pytest stopped with exit code {int(exit_code)}")

        result = TestResult.from_records(collector.records, duration)
        if sink is not None:
            sink.write(
                f"{result.passed} passed, {result.failed} failed, "
                f"{result.skipped} skipped in {result.duration:.2f}s"
            )
        return result
