"""
testorch command line.

Commands:
    run            Run tests with caching, retries, a wall-clock budget and baseline comparison
    history        List recent runs and run statistics
    cache-clear    Drop every fingerprint cache entry
    baseline-show  Print a stored baseline

Exit codes:
    0  success
    1  one or more tests failed
    2  setup or configuration error
    3  supervisor fault or timeout
"""

import argparse
import dataclasses
import json
import logging
import os
import sys
from enum import IntEnum
from pathlib import Path
from typing import List, Optional

from testorch.application.factories import (
    OrchestratorFactory,
    create_cache_store,
    create_uow_factory,
)
from testorch.application.services.fingerprint_cache import FingerprintCache
from testorch.application.validators import validate_input_paths, validate_limit
from testorch.config import TestOrchConfig
from testorch.domain.errors import (
    BaselineError,
    ConfigurationError,
    ExhaustedRetries,
    FailedTestsError,
    FatalFailure,
    TestOrchError,
)
from testorch.domain.models.work import TestFilter, WorkSpec
from testorch.infrastructure.baseline import BaselineStore
from testorch.infrastructure.output import StreamOutputSink
from testorch.infrastructure.runners import PytestRunner

logger = logging.getLogger("testorch")


class ExitCode(IntEnum):
    SUCCESS = 0
    TEST_FAILURES = 1
    CONFIGURATION_ERROR = 2
    SUPERVISOR_FAULT = 3


def exit_code_for_error(error: BaseException) -> ExitCode:
    """Map a surfaced error to the process exit code."""
    cause = error
    if isinstance(error, ExhaustedRetries):
        cause = error.last_failure
    elif isinstance(error, FatalFailure) and error.cause is not None:
        cause = error.cause
    if isinstance(cause, FailedTestsError):
        return ExitCode.TEST_FAILURES
    if isinstance(cause, (ConfigurationError, BaselineError)):
        return ExitCode.CONFIGURATION_ERROR
    return ExitCode.SUPERVISOR_FAULT


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Argument parsing
# ═══════════════════════════════════════════════════════════════════════════════


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testorch",
        description="Run test suites under a time budget with caching, retries and baseline comparison.",
    )
    parser.add_argument("--data-dir", help="Directory for the cache and run history (default: .testorch)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More output (repeatable)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run tests")
    run.add_argument("paths", nargs="+", help="Test files or directories")
    run.add_argument("--name", default="test-run", help="Label of the run in logs and history")
    run.add_argument("--timeout", type=float, help="Wall-clock budget per attempt in seconds")
    run.add_argument("--max-retries", type=int, help="Retries after the first attempt (default: 3)")
    run.add_argument("--retry-delay", type=float, help="Seconds between attempts (default: 1)")
    run.add_argument("--exponential-backoff", action="store_true", default=None,
                     help="Double the delay after every failed attempt")
    run.add_argument("--retry-on-failure", action="store_true", default=None,
                     help="Also retry runs that report failed tests")
    run.add_argument("--force-cache", action="store_true", default=None,
                     help="Ignore cached results and always execute")
    run.add_argument("--track-memory", action=argparse.BooleanOptionalAction, default=None,
                     help="Sample memory usage of the worker")
    run.add_argument("--track-cpu", action=argparse.BooleanOptionalAction, default=None,
                     help="Sample CPU usage of the worker")
    run.add_argument("--baseline", dest="baseline_path", help="Baseline document to compare against")
    run.add_argument("--regression-threshold", type=float,
                     help="Percent duration change that counts as regression (default: 5)")
    run.add_argument("--update-baseline", action="store_true", default=None,
                     help="Overwrite the baseline with this run")
    run.add_argument("-k", dest="name_patterns", action="append", default=[],
                     help="Only run tests matching this name expression (repeatable)")
    run.add_argument("-m", "--tag", dest="include_tags", action="append", default=[],
                     help="Only run tests with this marker (repeatable)")
    run.add_argument("--exclude-tag", dest="exclude_tags", action="append", default=[],
                     help="Skip tests with this marker (repeatable)")
    run.add_argument("--worker-mode", choices=("process", "thread"), help="Isolated worker kind")
    run.add_argument("--report-path", help="Write the report as JSON to this file")

    history = subparsers.add_parser("history", help="List recent runs")
    history.add_argument("--limit", type=int, default=20, help="Number of runs to list")
    history.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    subparsers.add_parser("cache-clear", help="Drop every cached result")

    baseline = subparsers.add_parser("baseline-show", help="Print a stored baseline")
    baseline.add_argument("path", help="Baseline document")

    return parser


def load_config(args: argparse.Namespace) -> TestOrchConfig:
    config = TestOrchConfig.from_env()
    if args.data_dir:
        # Re-derive cache and history locations under the new data dir
        config = dataclasses.replace(
            config,
            data_dir=args.data_dir,
            cache_dir=os.getenv("TESTORCH_CACHE_DIR"),
            history_db_url=os.getenv("TESTORCH_HISTORY_DB_URL"),
        )
    if args.verbose:
        config.log_level = "DEBUG"
    elif args.quiet:
        config.log_level = "WARNING"
    return config


# ═══════════════════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════════════════


def cmd_run(args: argparse.Namespace, config: TestOrchConfig) -> ExitCode:
    validate_input_paths(args.paths, must_exist=True)
    if args.worker_mode:
        config.worker_mode = args.worker_mode

    options = config.to_run_options(
        timeout=args.timeout,
        max_retries=args.max_retries,
        retry_delay=args.retry_delay,
        exponential_backoff=args.exponential_backoff,
        retry_on_failure=args.retry_on_failure,
        force_cache=args.force_cache,
        track_memory=args.track_memory,
        track_cpu=args.track_cpu,
        baseline_path=args.baseline_path,
        regression_threshold=args.regression_threshold,
        update_baseline=args.update_baseline,
    )
    test_filter = TestFilter(
        name_patterns=tuple(args.name_patterns),
        include_tags=tuple(args.include_tags),
        exclude_tags=tuple(args.exclude_tags),
    )
    sink = StreamOutputSink(sys.stdout)
    spec = WorkSpec.for_runner(
        PytestRunner(), args.paths, test_filter, args.verbose, sink, name=args.name
    )

    orchestrator = OrchestratorFactory.create(config)
    with sink:
        outcome = orchestrator.run(spec, options, sink)

    result, report = outcome.result, outcome.report
    source = "cached" if outcome.from_cache else f"{outcome.attempts} attempt(s)"
    print(
        f"{result.total} tests: {result.passed} passed, {result.failed} failed, "
        f"{result.skipped} skipped in {result.duration:.2f}s ({source})"
    )
    print(
        f"Success rate {report.success_rate:.1f}%, performance grade {report.performance_grade} "
        f"({report.performance_score:.0f}), stability {report.stability_score:.1f}"
    )
    if outcome.comparison is not None:
        comparison = outcome.comparison
        verdict = "REGRESSION" if comparison.is_regression else (
            "improvement" if comparison.is_improvement else "within threshold"
        )
        print(f"Baseline: duration {comparison.duration_change_percent:+.1f}% ({verdict})")
        for change in comparison.per_test_regressions:
            print(f"  slower: {change.name} {change.change_percent:+.1f}%")
    if outcome.baseline_updated:
        print(f"Baseline written to {options.baseline_path}")

    if args.report_path:
        path = Path(args.report_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(outcome.to_dict(), indent=2), encoding="utf-8")
        logger.info(f"Report written to {path}")

    return ExitCode.TEST_FAILURES if result.has_failures else ExitCode.SUCCESS


def cmd_history(args: argparse.Namespace, config: TestOrchConfig) -> ExitCode:
    limit = validate_limit(args.limit)
    if config.history_mode == "inmemory":
        logger.warning("Run history is in-memory; set TESTORCH_HISTORY_MODE=sqlalchemy to keep it")
    with create_uow_factory(config)() as uow:
        records = uow.runs.list_recent(limit)
        stats = uow.runs.statistics()

    if args.json:
        print(json.dumps(
            {"runs": [r.to_dict() for r in records], "statistics": stats.to_dict()},
            indent=2,
        ))
        return ExitCode.SUCCESS

    for r in records:
        print(
            f"{r.started_at:%Y-%m-%d %H:%M:%S}  {r.status.value:<8} {r.name:<20} "
            f"{r.passed}/{r.total} passed  {r.duration:7.2f}s  attempts={r.attempts}"
        )
    print(
        f"{stats.total_runs} runs, {stats.cache_hits} cache hits "
        f"({stats.cache_hit_rate:.0%}), {stats.passed_runs} passed, {stats.failed_runs} failed, "
        f"{stats.timed_out_runs} timed out, {stats.faulted_runs} faulted, "
        f"average {stats.average_duration:.2f}s"
    )
    return ExitCode.SUCCESS


def cmd_cache_clear(args: argparse.Namespace, config: TestOrchConfig) -> ExitCode:
    removed = FingerprintCache(create_cache_store(config)).clear()
    print(f"Removed {removed} cache entries")
    return ExitCode.SUCCESS


def cmd_baseline_show(args: argparse.Namespace, config: TestOrchConfig) -> ExitCode:
    record = BaselineStore(args.path).load()
    if record is None:
        print(f"No baseline at {args.path}", file=sys.stderr)
        return ExitCode.CONFIGURATION_ERROR
    print(json.dumps(record.to_dict(), indent=2))
    return ExitCode.SUCCESS


COMMANDS = {
    "run": cmd_run,
    "history": cmd_history,
    "cache-clear": cmd_cache_clear,
    "baseline-show": cmd_baseline_show,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return ExitCode.CONFIGURATION_ERROR
    configure_logging(config.log_level)

    try:
        return COMMANDS[args.command](args, config)
    except (ConfigurationError, BaselineError) as e:
        logger.error(str(e))
        return ExitCode.CONFIGURATION_ERROR
    except TestOrchError as e:
        code = exit_code_for_error(e)
        logger.error(f"{type(e).__name__}: {e}")
        return code


if __name__ == "__main__":
    sys.exit(main())
