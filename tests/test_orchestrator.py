"""
End-to-end tests for the TestRunOrchestrator.

Wires real services (fingerprint cache, retry coordinator, supervisor,
aggregator, in-memory history) around scripted workloads. Supervision runs
inline or in thread mode so call counters on the workloads stay visible.

Run with: pytest tests/test_orchestrator.py -v
"""

import json

import pytest

from testorch.application.factories import OrchestratorFactory
from testorch.application.services.execution_supervisor import ExecutionSupervisor
from testorch.application.services.fingerprint_cache import FingerprintCache
from testorch.application.services.orchestrator import TestRunOrchestrator, status_for_error
from testorch.application.services.retry_coordinator import RetryCoordinator
from testorch.domain.errors import (
    BaselineError,
    ConfigurationError,
    ExecutionTimeout,
    ExhaustedRetries,
    FatalFailure,
    TransientFailure,
    WorkerFault,
)
from testorch.domain.models.baseline import EnvironmentInfo
from testorch.domain.models.options import RunOptions
from testorch.domain.models.run_history import RunStatus
from testorch.domain.models.work import WorkSpec
from testorch.infrastructure.baseline import BaselineStore
from testorch.infrastructure.cache import InMemoryCacheStore

from tests.mocks import (
    BrokenCacheStore,
    BrokenUnitOfWork,
    RecordingMonitor,
    ScriptedWork,
    StaticRunner,
    always_fails,
    make_result,
    sleeping_work,
)


@pytest.fixture
def monitor() -> RecordingMonitor:
    return RecordingMonitor()


@pytest.fixture
def orchestrator(memory_store, fake_sleep, history_uow, monitor) -> TestRunOrchestrator:
    return TestRunOrchestrator(
        cache=FingerprintCache(memory_store),
        supervisor=ExecutionSupervisor(worker_mode="thread", poll_interval=0.02),
        retry=RetryCoordinator(recovery_actions=(), sleep=fake_sleep),
        uow_factory=lambda: history_uow,
        monitor_factory=lambda options: monitor,
    )


def _history(history_uow):
    return history_uow.runs.list_recent(100)


# ═══════════════════════════════════════════════════════════════════════════════
# Cache short-circuit
# ═══════════════════════════════════════════════════════════════════════════════


class TestCachedRuns:
    """Unchanged inputs skip execution."""

    def test_second_run_served_from_cache(self, orchestrator, input_files, history_uow):
        result = make_result(passed=10)
        work = ScriptedWork([result])
        spec = WorkSpec(work=work, input_paths=tuple(input_files), name="unit")

        first = orchestrator.run(spec)
        second = orchestrator.run(spec)

        assert work.calls == 1
        assert not first.from_cache
        assert second.from_cache
        assert second.result == result
        assert second.attempts == 0
        assert second.report.success_rate == 100.0
        statuses = sorted(r.status.value for r in _history(history_uow))
        assert statuses == ["cached", "passed"]

    def test_changed_input_executes_again(self, orchestrator, input_files):
        work = ScriptedWork([make_result()])
        spec = WorkSpec(work=work, input_paths=tuple(input_files))
        orchestrator.run(spec)

        with open(input_files[1], "a") as f:
            f.write("# edited\n")
        outcome = orchestrator.run(spec)

        assert work.calls == 2
        assert not outcome.from_cache

    def test_force_cache_always_executes(self, orchestrator, input_files):
        work = ScriptedWork([make_result()])
        spec = WorkSpec(work=work, input_paths=tuple(input_files))
        orchestrator.run(spec)

        outcome = orchestrator.run(spec, RunOptions(force_cache=True))

        assert work.calls == 2
        assert not outcome.from_cache

    def test_no_input_paths_never_cached(self, orchestrator, memory_store):
        work = ScriptedWork([make_result()])
        spec = WorkSpec(work=work)

        orchestrator.run(spec)
        orchestrator.run(spec)

        assert work.calls == 2
        assert memory_store.count() == 0

    def test_broken_cache_does_not_fail_run(self, fake_sleep, input_files):
        orchestrator = OrchestratorFactory.create_with_dependencies(
            cache_store=BrokenCacheStore(),
            supervisor=ExecutionSupervisor(worker_mode="thread"),
            retry=RetryCoordinator(sleep=fake_sleep),
        )

        outcome = orchestrator.run(WorkSpec(work=ScriptedWork([make_result()]), input_paths=tuple(input_files)))

        assert outcome.result.passed == 10
        assert not outcome.from_cache


# ═══════════════════════════════════════════════════════════════════════════════
# Execution and retries
# ═══════════════════════════════════════════════════════════════════════════════


class TestExecution:

    def test_transient_failures_then_success(self, orchestrator, fake_sleep, history_uow, input_files):
        work = ScriptedWork([TransientFailure("locked"), TransientFailure("locked"), make_result(passed=10)])
        spec = WorkSpec(work=work, input_paths=tuple(input_files))

        outcome = orchestrator.run(spec, RunOptions(max_retries=3, retry_delay=1.0))

        assert outcome.result.passed == 10
        assert outcome.attempts == 3
        assert fake_sleep.delays == [1.0, 1.0]
        record = history_uow.runs.get_by_run_id(outcome.run_id)
        assert record.status is RunStatus.PASSED
        assert record.attempts == 3

    def test_monitor_summary_attached(self, orchestrator, monitor):
        outcome = orchestrator.run(WorkSpec(work=ScriptedWork([make_result()])))

        assert outcome.performance == monitor.summary
        assert outcome.report.performance == monitor.summary
        assert monitor.stopped == 1

    def test_monitoring_disabled(self, orchestrator, monitor):
        outcome = orchestrator.run(
            WorkSpec(work=ScriptedWork([make_result()])),
            RunOptions(track_memory=False, track_cpu=False),
        )

        assert outcome.performance is None
        assert monitor.started == []

    def test_fatal_failure_recorded_and_raised(self, orchestrator, history_uow):
        work = always_fails(PermissionError("Access is denied"))

        with pytest.raises(FatalFailure):
            orchestrator.run(WorkSpec(work=work, name="locked-out"), RunOptions(max_retries=3))

        assert work.calls == 1
        (record,) = _history(history_uow)
        assert record.status is RunStatus.FAULTED
        assert record.attempts == 1
        assert "Access is denied" in record.error

    def test_timeout_recorded_as_timeout(self, orchestrator, history_uow):
        with pytest.raises(ExhaustedRetries) as exc_info:
            orchestrator.run(
                WorkSpec(work=sleeping_work(3.0)),
                RunOptions(timeout=0.2, max_retries=1, retry_delay=0),
            )

        assert isinstance(exc_info.value.last_failure, ExecutionTimeout)
        (record,) = _history(history_uow)
        assert record.status is RunStatus.TIMEOUT
        assert record.attempts == 2

    def test_failed_tests_returned_without_retry(self, orchestrator, history_uow):
        work = ScriptedWork([make_result(passed=8, failed=2)])

        outcome = orchestrator.run(WorkSpec(work=work))

        assert work.calls == 1
        assert outcome.result.failed == 2
        assert history_uow.runs.get_by_run_id(outcome.run_id).status is RunStatus.FAILED

    def test_failed_tests_retried_on_request(self, orchestrator):
        work = ScriptedWork([make_result(passed=8, failed=2), make_result(passed=10)])

        outcome = orchestrator.run(WorkSpec(work=work), RunOptions(retry_on_failure=True, timeout=5))

        assert work.calls == 2
        assert outcome.result.failed == 0

    def test_invalid_options_rejected_before_work(self, orchestrator):
        work = ScriptedWork([make_result()])

        with pytest.raises(ConfigurationError):
            orchestrator.run(WorkSpec(work=work), RunOptions(timeout=-1))

        assert work.calls == 0

    def test_history_failure_absorbed(self, memory_store, fake_sleep, caplog):
        orchestrator = OrchestratorFactory.create_with_dependencies(
            cache_store=memory_store,
            supervisor=ExecutionSupervisor(worker_mode="thread"),
            retry=RetryCoordinator(sleep=fake_sleep),
            uow_factory=BrokenUnitOfWork,
        )

        outcome = orchestrator.run(WorkSpec(work=ScriptedWork([make_result()])))

        assert outcome.result.passed == 10
        assert "Could not record run" in caplog.text

    def test_runner_based_workspec(self, orchestrator, input_files):
        runner = StaticRunner(make_result(passed=2))

        outcome = orchestrator.run(WorkSpec.for_runner(runner, input_files, name="static"))

        assert outcome.result.passed == 2
        assert runner.calls[0][0] == tuple(input_files)


class TestStatusMapping:

    @pytest.mark.parametrize("error, status", [
        (ExhaustedRetries(ExecutionTimeout(2.0, 1.0), []), RunStatus.TIMEOUT),
        (ExhaustedRetries(WorkerFault("boom"), []), RunStatus.FAULTED),
        (FatalFailure("denied", cause=PermissionError("denied")), RunStatus.FAULTED),
        (ExecutionTimeout(2.0, 1.0), RunStatus.TIMEOUT),
        (BaselineError("b.json", "bad"), RunStatus.FAULTED),
    ])
    def test_status_for_error(self, error, status):
        assert status_for_error(error) is status


# ═══════════════════════════════════════════════════════════════════════════════
# Baselines
# ═══════════════════════════════════════════════════════════════════════════════


class TestBaselineIntegration:

    @pytest.fixture
    def baseline_path(self, tmp_path) -> str:
        return str(tmp_path / "baseline.json")

    def test_update_then_compare(self, orchestrator, baseline_path):
        first = orchestrator.run(
            WorkSpec(work=ScriptedWork([make_result(duration=100.0)])),
            RunOptions(baseline_path=baseline_path, update_baseline=True),
        )
        second = orchestrator.run(
            WorkSpec(work=ScriptedWork([make_result(duration=110.0)])),
            RunOptions(baseline_path=baseline_path),
        )

        assert first.baseline_updated
        assert first.comparison is None
        assert second.comparison.is_regression
        assert second.comparison.duration_change_percent == pytest.approx(10.0)
        assert not second.baseline_updated

    def test_missing_baseline_skips_comparison(self, orchestrator, baseline_path):
        outcome = orchestrator.run(
            WorkSpec(work=ScriptedWork([make_result()])),
            RunOptions(baseline_path=baseline_path),
        )

        assert outcome.comparison is None

    def test_broken_baseline_fails_before_work(self, orchestrator, baseline_path, history_uow):
        with open(baseline_path, "w") as f:
            f.write("{broken")
        work = ScriptedWork([make_result()])

        with pytest.raises(BaselineError):
            orchestrator.run(WorkSpec(work=work), RunOptions(baseline_path=baseline_path))

        assert work.calls == 0
        assert _history(history_uow)[0].status is RunStatus.FAULTED

    def test_cache_hit_neither_compares_nor_updates(self, orchestrator, baseline_path, input_files):
        BaselineStore(baseline_path).update(make_result(duration=1.0), environment=EnvironmentInfo())
        spec = WorkSpec(work=ScriptedWork([make_result(duration=50.0)]), input_paths=tuple(input_files))
        orchestrator.run(spec)

        outcome = orchestrator.run(spec, RunOptions(baseline_path=baseline_path, update_baseline=True))

        assert outcome.from_cache
        assert outcome.comparison is None
        assert not outcome.baseline_updated
        assert BaselineStore(baseline_path).load().test_summary.duration == 1.0

    def test_update_requires_path(self, orchestrator):
        with pytest.raises(ConfigurationError):
            orchestrator.run(WorkSpec(work=ScriptedWork([make_result()])), RunOptions(update_baseline=True))

    def test_outcome_report_is_json_serializable(self, orchestrator, baseline_path):
        orchestrator.run(
            WorkSpec(work=ScriptedWork([make_result(duration=10.0)])),
            RunOptions(baseline_path=baseline_path, update_baseline=True),
        )
        outcome = orchestrator.run(
            WorkSpec(work=ScriptedWork([make_result(passed=9, failed=1, duration=9.0)])),
            RunOptions(baseline_path=baseline_path),
        )

        data = json.loads(json.dumps(outcome.to_dict()))

        assert data["report"]["summary"]["failed"] == 1
        assert data["comparison"]["is_improvement"] is True
        assert len(data["attempts"]) == 1


# ═══════════════════════════════════════════════════════════════════════════════
# Factory wiring
# ═══════════════════════════════════════════════════════════════════════════════


class TestOrchestratorFactory:

    def test_configured_orchestrator_runs(self, test_config, input_files):
        orchestrator = OrchestratorFactory.create(test_config, recovery_actions=(), sleep=lambda s: None)
        runner = StaticRunner(make_result(passed=5))
        spec = WorkSpec.for_runner(runner, input_files)

        first = orchestrator.run(spec, RunOptions(timeout=10))
        second = orchestrator.run(spec, RunOptions(timeout=10))

        assert first.result.passed == 5
        assert second.from_cache
        assert len(runner.calls) == 1
        assert isinstance(orchestrator.cache.backend, InMemoryCacheStore)

    def test_for_testing_uses_inmemory_storage(self):
        orchestrator = OrchestratorFactory.create_for_testing()

        assert isinstance(orchestrator.cache.backend, InMemoryCacheStore)
        outcome = orchestrator.run(WorkSpec(work=ScriptedWork([make_result(passed=1)])))
        assert outcome.result.passed == 1
