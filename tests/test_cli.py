"""
Tests for the testorch command line.

Commands run in-process through ``main(argv)`` against a data directory
under tmp_path; the test suites they run are written to tmp_path as well. Suite
files get unique basenames because pytest caches imported test modules by name.

Run with: pytest tests/test_cli.py -v
"""

import json
import uuid

import pytest

from testorch.cli import ExitCode, build_parser, exit_code_for_error, main
from testorch.domain.errors import (
    BaselineError,
    ConfigurationError,
    ExecutionTimeout,
    ExhaustedRetries,
    FailedTestsError,
    FatalFailure,
    WorkerFault,
)

from tests.mocks import make_result


@pytest.fixture
def data_dir(tmp_path) -> str:
    return str(tmp_path / "data")


@pytest.fixture
def passing_suite(tmp_path) -> str:
    path = tmp_path / "suite_ok" / f"test_orch_cli_ok_{uuid.uuid4().hex[:8]}.py"
    path.parent.mkdir()
    path.write_text("def test_one():\n    assert True\n\ndef test_two():\n    assert 2 > 1\n")
    return str(path)


@pytest.fixture
def failing_suite(tmp_path) -> str:
    path = tmp_path / "suite_bad" / f"test_orch_cli_bad_{uuid.uuid4().hex[:8]}.py"
    path.parent.mkdir()
    path.write_text("def test_ok():\n    pass\n\ndef test_broken():\n    assert False\n")
    return str(path)


# ═══════════════════════════════════════════════════════════════════════════════
# Parser and exit codes
# ═══════════════════════════════════════════════════════════════════════════════


class TestParser:

    def test_run_flags(self):
        args = build_parser().parse_args([
            "run", "tests/", "--timeout", "60", "--max-retries", "1",
            "--exponential-backoff", "-k", "login", "-m", "smoke", "--exclude-tag", "slow",
            "--no-track-memory", "--baseline", "b.json", "--update-baseline",
        ])

        assert args.command == "run"
        assert args.paths == ["tests/"]
        assert args.timeout == 60.0
        assert args.max_retries == 1
        assert args.exponential_backoff is True
        assert args.name_patterns == ["login"]
        assert args.include_tags == ["smoke"]
        assert args.exclude_tags == ["slow"]
        assert args.track_memory is False
        assert args.baseline_path == "b.json"
        assert args.update_baseline is True

    def test_unset_flags_are_none(self):
        args = build_parser().parse_args(["run", "tests/"])

        assert args.timeout is None
        assert args.retry_on_failure is None
        assert args.track_cpu is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestExitCodes:

    @pytest.mark.parametrize("error, code", [
        (ExhaustedRetries(FailedTestsError(make_result(passed=1, failed=1)), []), ExitCode.TEST_FAILURES),
        (ConfigurationError("bad"), ExitCode.CONFIGURATION_ERROR),
        (BaselineError("b.json", "bad"), ExitCode.CONFIGURATION_ERROR),
        (FatalFailure("denied", cause=ConfigurationError("bad")), ExitCode.CONFIGURATION_ERROR),
        (FatalFailure("denied", cause=PermissionError("denied")), ExitCode.SUPERVISOR_FAULT),
        (ExhaustedRetries(ExecutionTimeout(2.0, 1.0), []), ExitCode.SUPERVISOR_FAULT),
        (WorkerFault("boom"), ExitCode.SUPERVISOR_FAULT),
    ])
    def test_mapping(self, error, code):
        assert exit_code_for_error(error) is code


# ═══════════════════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════════════════


class TestRunCommand:

    def test_passing_run_then_cached(self, data_dir, passing_suite, capsys):
        assert main(["--data-dir", data_dir, "run", passing_suite]) == 0
        first = capsys.readouterr().out

        assert main(["--data-dir", data_dir, "run", passing_suite]) == 0
        second = capsys.readouterr().out

        assert "2 tests: 2 passed, 0 failed" in first
        assert "1 attempt(s)" in first
        assert "(cached)" in second

    def test_failing_run_exits_one(self, data_dir, failing_suite, capsys):
        code = main(["--data-dir", data_dir, "run", failing_suite])

        assert code == ExitCode.TEST_FAILURES
        assert "1 failed" in capsys.readouterr().out

    def test_report_and_baseline_written(self, data_dir, passing_suite, tmp_path, capsys):
        report_path = tmp_path / "out" / "report.json"
        baseline_path = tmp_path / "baseline.json"

        code = main([
            "--data-dir", data_dir, "run", passing_suite,
            "--report-path", str(report_path),
            "--baseline", str(baseline_path), "--update-baseline",
        ])

        assert code == 0
        report = json.loads(report_path.read_text())
        assert report["report"]["summary"]["passed"] == 2
        assert report["baseline_updated"] is True
        assert baseline_path.exists()
        capsys.readouterr()

        assert main(["baseline-show", str(baseline_path)]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["test_summary"]["total"] == 2

    def test_missing_path_is_configuration_error(self, data_dir, tmp_path):
        assert main(["--data-dir", data_dir, "run", str(tmp_path / "nope")]) == ExitCode.CONFIGURATION_ERROR

    def test_invalid_timeout_is_configuration_error(self, data_dir, passing_suite):
        code = main(["--data-dir", data_dir, "run", passing_suite, "--timeout", "0"])

        assert code == ExitCode.CONFIGURATION_ERROR

    def test_invalid_environment_is_configuration_error(self, data_dir, passing_suite, monkeypatch):
        monkeypatch.setenv("TESTORCH_MAX_RETRIES", "plenty")

        assert main(["--data-dir", data_dir, "run", passing_suite]) == ExitCode.CONFIGURATION_ERROR


class TestMaintenanceCommands:

    def test_history_lists_runs(self, data_dir, passing_suite, capsys):
        main(["--data-dir", data_dir, "run", passing_suite])
        main(["--data-dir", data_dir, "run", passing_suite])
        capsys.readouterr()

        assert main(["--data-dir", data_dir, "history", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)

        assert data["statistics"]["total_runs"] == 2
        assert data["statistics"]["cache_hits"] == 1
        assert [r["status"] for r in data["runs"]] == ["cached", "passed"]

    def test_history_rejects_bad_limit(self, data_dir):
        assert main(["--data-dir", data_dir, "history", "--limit", "0"]) == ExitCode.CONFIGURATION_ERROR

    def test_cache_clear(self, data_dir, passing_suite, capsys):
        main(["--data-dir", data_dir, "run", passing_suite])
        capsys.readouterr()

        assert main(["--data-dir", data_dir, "cache-clear"]) == 0
        assert "Removed 1 cache entries" in capsys.readouterr().out

    def test_baseline_show_missing(self, tmp_path, capsys):
        code = main(["baseline-show", str(tmp_path / "absent.json")])

        assert code == ExitCode.CONFIGURATION_ERROR
        assert "No baseline" in capsys.readouterr().err

    def test_baseline_show_malformed(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[")

        assert main(["baseline-show", str(path)]) == ExitCode.CONFIGURATION_ERROR
