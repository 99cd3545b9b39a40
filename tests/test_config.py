"""
Tests for configuration and input validation.

Run with: pytest tests/test_config.py -v
"""

import pytest

from testorch.application.validators import (
    validate_input_paths,
    validate_limit,
    validate_run_options,
    validate_timeout,
)
from testorch.config import TestOrchConfig, get_config, reset_config, set_config
from testorch.domain.errors import ConfigurationError
from testorch.domain.models.options import RunOptions


class TestConfigPresets:

    def test_defaults_derive_storage_from_data_dir(self):
        config = TestOrchConfig(data_dir="/tmp/orch", history_mode="sqlalchemy")

        assert config.cache_dir.replace("\\", "/") == "/tmp/orch/cache"
        assert config.history_db_url == "sqlite:////tmp/orch/history.db"

    def test_for_testing_is_inmemory(self):
        config = TestOrchConfig.for_testing()

        assert config.cache_mode == "inmemory"
        assert config.history_mode == "inmemory"
        assert config.retry_delay == 0.0

    def test_for_ci(self):
        config = TestOrchConfig.for_ci(timeout=600)

        assert config.timeout == 600
        assert config.exponential_backoff
        assert config.track_cpu

    def test_global_config_lifecycle(self):
        custom = TestOrchConfig.for_testing()
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom


class TestConfigFromEnv:

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)

        config = TestOrchConfig.from_env()

        assert config.cache_mode == "file"
        assert config.history_mode == "sqlalchemy"
        assert config.worker_mode == "process"
        assert config.timeout is None
        assert config.max_retries == 3
        assert config.track_memory is True

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TESTORCH_DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setenv("TESTORCH_TIMEOUT", "120")
        monkeypatch.setenv("TESTORCH_MAX_RETRIES", "1")
        monkeypatch.setenv("TESTORCH_EXPONENTIAL_BACKOFF", "yes")
        monkeypatch.setenv("TESTORCH_TRACK_MEMORY", "false")
        monkeypatch.setenv("TESTORCH_WORKER_MODE", "thread")

        config = TestOrchConfig.from_env()

        assert config.timeout == 120.0
        assert config.max_retries == 1
        assert config.exponential_backoff
        assert not config.track_memory
        assert config.worker_mode == "thread"
        assert config.history_db_url.endswith("data/history.db")

    def test_invalid_number_raises(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TESTORCH_MAX_RETRIES", "many")

        with pytest.raises(ValueError):
            TestOrchConfig.from_env()


class TestRunOptionsFromConfig:

    def test_none_overrides_fall_back_to_config(self):
        config = TestOrchConfig.for_testing()
        config.timeout = 30.0

        options = config.to_run_options(timeout=None, max_retries=5)

        assert options.timeout == 30.0
        assert options.max_retries == 5
        assert options.retry_delay == 0.0

    def test_unknown_option_rejected(self):
        with pytest.raises(TypeError):
            TestOrchConfig().to_run_options(colour="blue")

    def test_retry_policy_from_options(self):
        policy = RunOptions(max_retries=2, retry_delay=0.5, exponential_backoff=True).retry_policy()

        assert policy.max_attempts == 3
        assert policy.delay_after(2) == 1.0


# ═══════════════════════════════════════════════════════════════════════════════
# Validators
# ═══════════════════════════════════════════════════════════════════════════════


class TestValidators:

    def test_timeout(self):
        assert validate_timeout(None) is None
        assert validate_timeout(5) == 5.0
        with pytest.raises(ConfigurationError):
            validate_timeout(0)

    @pytest.mark.parametrize("options", [
        RunOptions(timeout=-1),
        RunOptions(max_retries=-1),
        RunOptions(retry_delay=-0.5),
        RunOptions(regression_threshold=-5),
        RunOptions(update_baseline=True),
    ])
    def test_invalid_run_options(self, options):
        with pytest.raises(ConfigurationError):
            validate_run_options(options)

    def test_valid_run_options_returned(self):
        options = RunOptions(timeout=10, baseline_path="b.json", update_baseline=True)

        assert validate_run_options(options) is options

    @pytest.mark.parametrize("limit", [0, 1001, "ten"])
    def test_invalid_limit(self, limit):
        with pytest.raises(ConfigurationError):
            validate_limit(limit)

    def test_input_paths(self):
        assert validate_input_paths(["tests/"]) == ["tests/"]
        with pytest.raises(ConfigurationError):
            validate_input_paths(["tests/", "  "])

    def test_input_paths_must_exist(self, tmp_path):
        present = tmp_path / "test_present.py"
        present.write_text("def test_ok():\n    pass\n")

        assert validate_input_paths([str(present)], must_exist=True) == [str(present)]
        with pytest.raises(ConfigurationError, match="do not exist"):
            validate_input_paths([str(present), str(tmp_path / "gone.py")], must_exist=True)
