"""
Test Run Orchestrator.

Ties the five parts of a run together:

    FingerprintCache.lookup ──hit──► RunOutcome(from_cache=True)
            │ miss
            ▼
    RetryCoordinator.execute( ExecutionSupervisor.run(work) + ResourceMonitor )
            │ success
            ▼
    FingerprintCache.store ─► ResultAggregator.summarize ─► compare / update baseline

Every run, whatever its outcome, is recorded in the run history. Cache,
history and baseline-writing failures are logged and never change the outcome
of the run; supervisor and retry failures are re-raised to the caller.

Usage:
    orchestrator = OrchestratorFactory.create(config)
    outcome = orchestrator.run(
        WorkSpec.for_runner(PytestRunner(), ["tests/"]),
        RunOptions(timeout=600, baseline_path="baseline.json"),
    )
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from testorch.domain.errors import (
    ExecutionTimeout,
    ExhaustedRetries,
    FailedTestsError,
    FatalFailure,
    TestOrchError,
)
from testorch.domain.interfaces.output_sink import IOutputSink
from testorch.domain.interfaces.resource_monitor import IResourceMonitor
from testorch.domain.interfaces.unit_of_work import IUnitOfWork
from testorch.domain.models.baseline import BaselineRecord, RegressionComparison
from testorch.domain.models.options import RunOptions
from testorch.domain.models.performance import PerformanceSummary
from testorch.domain.models.report import QualityReport
from testorch.domain.models.results import TestResult
from testorch.domain.models.retry import AttemptRecord
from testorch.domain.models.run_history import RunRecord, RunStatus
from testorch.domain.models.work import WorkSpec
from testorch.application.validators import validate_run_options
from testorch.infrastructure.baseline import BaselineStore

from .execution_supervisor import ExecutionSupervisor, SupervisedExecution
from .fingerprint_cache import FingerprintCache
from .result_aggregator import ResultAggregator
from .retry_coordinator import RetryCoordinator

logger = logging.getLogger(__name__)

MonitorFactory = Callable[[RunOptions], Optional[IResourceMonitor]]


@dataclass
class RunOutcome:
    """
    What a completed run hands back to its caller.

    Attributes:
        run_id: UUID of the run history record
        result: The test result (cached or fresh)
        report: Quality report of the result
        from_cache: The result was served from the fingerprint cache
        history: Attempt history (empty on cache hit)
        performance: Resource summary of the successful attempt, if monitored
        comparison: Regression comparison, if a baseline was available
        baseline_updated: A new baseline was written by this run
    """
    run_id: str
    result: TestResult
    report: QualityReport
    from_cache: bool = False
    history: List[AttemptRecord] = field(default_factory=list)
    performance: Optional[PerformanceSummary] = None
    comparison: Optional[RegressionComparison] = None
    baseline_updated: bool = False

    @property
    def attempts(self) -> int:
        return len(self.history)

    def to_dict(self) -> dict:
        """Serialize to dictionary (report export)."""
        return {
            "run_id": self.run_id,
            "from_cache": self.from_cache,
            "attempts": [a.to_dict() for a in self.history],
            "report": self.report.to_dict(),
            "comparison": self.comparison.to_dict() if self.comparison else None,
            "baseline_updated": self.baseline_updated,
        }


def status_for_error(error: BaseException) -> RunStatus:
    """Run history status of a run that ended with ``error``."""
    cause = error
    if isinstance(error, ExhaustedRetries):
        cause = error.last_failure
    elif isinstance(error, FatalFailure) and error.cause is not None:
        cause = error.cause
    if isinstance(cause, ExecutionTimeout):
        return RunStatus.TIMEOUT
    if isinstance(cause, FailedTestsError):
        return RunStatus.FAILED
    return RunStatus.FAULTED


class TestRunOrchestrator:
    """
    Runs a WorkSpec through cache, retry, supervision and aggregation.

    Attributes:
        cache: Fingerprint cache consulted before and updated after execution
        supervisor: Runs each attempt under the wall-clock budget
        retry: Retry coordinator wrapping the supervised attempts
        aggregator: Report and baseline comparison
        uow_factory: Creates a unit of work for run history (None = not recorded)
        monitor_factory: Creates the resource monitor for one run
        baseline_store_factory: Opens the baseline document at a path
    """
    __test__ = False

    def __init__(
        self,
        cache: FingerprintCache,
        supervisor: ExecutionSupervisor,
        retry: RetryCoordinator,
        aggregator: Optional[ResultAggregator] = None,
        uow_factory: Optional[Callable[[], IUnitOfWork]] = None,
        monitor_factory: Optional[MonitorFactory] = None,
        baseline_store_factory: Callable[[str], BaselineStore] = BaselineStore,
    ):
        self.cache = cache
        self.supervisor = supervisor
        self.retry = retry
        self.aggregator = aggregator or ResultAggregator()
        self._uow_factory = uow_factory
        self._monitor_factory = monitor_factory
        self._baseline_store_factory = baseline_store_factory

    def run(
        self,
        work_spec: WorkSpec,
        options: Optional[RunOptions] = None,
        sink: Optional[IOutputSink] = None,
    ) -> RunOutcome:
        """
        Execute one run.

        Raises:
            ConfigurationError: Invalid options
            BaselineError: The baseline document exists but cannot be read
            FatalFailure: An attempt failed fatally
            ExhaustedRetries: Every attempt failed
        """
        options = validate_run_options(options or RunOptions())
        record = RunRecord(name=work_spec.name)
        paths = work_spec.input_paths

        try:
            if paths:
                entry = self.cache.lookup(paths, force=options.force_cache)
                if entry is not None:
                    record.fingerprint = entry.fingerprint
                    outcome = RunOutcome(
                        run_id=record.run_id,
                        result=entry.result,
                        report=self.aggregator.summarize(entry.result),
                        from_cache=True,
                    )
                    self._finish(record, RunStatus.CACHED, outcome.result)
                    return outcome

            # A broken baseline fails the run before any work is done
            baseline = self._load_baseline(options)
            outcome = self._execute(work_spec, options, sink, record)
        except TestOrchError as e:
            record.attempts = len(getattr(e, "history", []) or [])
            record.error = str(e)
            self._finish(record, status_for_error(e), None)
            raise

        if paths:
            stored = self.cache.store(paths, outcome.result)
            if stored is not None:
                record.fingerprint = stored.fingerprint

        if baseline is not None:
            outcome.comparison = self.aggregator.compare_to_baseline(
                outcome.report, baseline, options.regression_threshold
            )
        if options.update_baseline:
            outcome.baseline_updated = self._update_baseline(options, outcome)

        record.attempts = outcome.attempts
        if outcome.performance is not None:
            record.peak_memory_bytes = outcome.performance.peak_memory_bytes
        status = RunStatus.FAILED if outcome.result.has_failures else RunStatus.PASSED
        self._finish(record, status, outcome.result)
        return outcome

    # ═══════════════════════════════════════════════════════════════════════════
    # Execution
    # ═══════════════════════════════════════════════════════════════════════════

    def _execute(
        self,
        work_spec: WorkSpec,
        options: RunOptions,
        sink: Optional[IOutputSink],
        record: RunRecord,
    ) -> RunOutcome:
        def attempt() -> SupervisedExecution:
            monitor = None
            if self._monitor_factory is not None and options.monitoring_enabled:
                monitor = self._monitor_factory(options)
            return self.supervisor.run(
                work_spec.work,
                timeout=options.timeout,
                monitor=monitor,
                sink=sink,
                name=work_spec.name,
            )

        logger.info(f"Executing {work_spec.name} (run {record.run_id})")
        retried = self.retry.execute(
            attempt,
            options.retry_policy(),
            extract_result=lambda execution: execution.result,
        )
        execution = retried.value
        return RunOutcome(
            run_id=record.run_id,
            result=execution.result,
            report=self.aggregator.summarize(execution.result, execution.performance),
            history=retried.history,
            performance=execution.performance,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Baseline
    # ═══════════════════════════════════════════════════════════════════════════

    def _load_baseline(self, options: RunOptions) -> Optional[BaselineRecord]:
        if not options.baseline_path:
            return None
        baseline = self._baseline_store_factory(options.baseline_path).load()
        if baseline is None and not options.update_baseline:
            logger.warning(f"Baseline {options.baseline_path} not found, skipping comparison")
        return baseline

    def _update_baseline(self, options: RunOptions, outcome: RunOutcome) -> bool:
        store = self._baseline_store_factory(options.baseline_path)
        try:
            store.update(outcome.result, outcome.performance)
        except TestOrchError as e:
            logger.warning(f"Baseline update failed: {e}")
            return False
        return True

    # ═══════════════════════════════════════════════════════════════════════════
    # Run history
    # ═══════════════════════════════════════════════════════════════════════════

    def _finish(self, record: RunRecord, status: RunStatus, result: Optional[TestResult]) -> None:
        record.status = status
        record.finished_at = datetime.now()
        record.from_cache = status is RunStatus.CACHED
        if result is not None:
            record.total = result.total
            record.passed = result.passed
            record.failed = result.failed
            record.skipped = result.skipped
            record.duration = result.duration
        if self._uow_factory is None:
            return
        try:
            with self._uow_factory() as uow:
                uow.runs.add(record)
                uow.commit()
        except Exception as e:
            logger.warning(f"Could not record run {record.run_id} in history: {e}")
