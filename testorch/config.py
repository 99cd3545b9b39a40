"""
testorch Configuration.

Centralized configuration for the test run orchestrator.

Supports multiple deployment modes:
- Testing: In-memory cache and run history, short supervisor intervals
- Development: File cache and SQLite run history under ``data_dir``
- CI: Same as development, stricter retries, no SQL logging

Usage:
    from testorch.config import TestOrchConfig

    # For testing
    config = TestOrchConfig.for_testing()

    # For development
    config = TestOrchConfig.for_development()

    # From environment (and .env)
    config = TestOrchConfig.from_env()
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from testorch.domain.models.options import RunOptions


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() in ("1", "true", "yes")


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


@dataclass
class TestOrchConfig:
    """
    Orchestrator configuration.

    Attributes:
        cache_mode: Fingerprint cache backend - "file" or "inmemory"
        cache_dir: Directory holding cache entries (file mode)
        history_mode: Run history backend - "sqlalchemy" or "inmemory"
        history_db_url: Database URL for sqlalchemy mode
        data_dir: Base directory for data files
        worker_mode: Isolated worker kind - "process" or "thread"
        timeout: Default wall-clock budget in seconds (None = inline run)
        max_retries / retry_delay / exponential_backoff / retry_on_failure: Retry policy
        force_cache: Bypass the fingerprint cache
        track_memory / track_cpu: Resource monitor metrics
        baseline_path / regression_threshold / update_baseline: Baseline comparison
        sample_interval: Seconds between resource samples
        poll_interval: Seconds between worker completion checks
        heartbeat_interval: Seconds between progress heartbeats
        grace_period: Seconds between cooperative and forced termination
        monitor_ceiling: Hard lifetime limit of a monitoring task
        liveness_interval: Seconds between target-process existence checks
    """
    __test__ = False

    # Storage
    cache_mode: str = "file"
    cache_dir: Optional[str] = None
    history_mode: str = "inmemory"
    history_db_url: Optional[str] = None
    data_dir: str = ".testorch"

    # Worker isolation: "process" or "thread"
    worker_mode: str = "process"

    # Run options
    timeout: Optional[float] = None
    max_retries: int = 3
    retry_delay: float = 1.0
    exponential_backoff: bool = False
    retry_on_failure: bool = False
    force_cache: bool = False
    track_memory: bool = True
    track_cpu: bool = False
    baseline_path: Optional[str] = None
    regression_threshold: float = 5.0
    update_baseline: bool = False

    # Supervisor / monitor timings
    sample_interval: float = 0.5
    poll_interval: float = 5.0
    heartbeat_interval: float = 30.0
    grace_period: float = 5.0
    monitor_ceiling: float = 30 * 60.0
    liveness_interval: float = 5.0

    # Logging
    log_sql: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Derive storage locations from data_dir when not given."""
        if self.cache_dir is None:
            self.cache_dir = str(Path(self.data_dir) / "cache")
        if self.history_db_url is None and self.history_mode == "sqlalchemy":
            self.history_db_url = f"sqlite:///{self.data_dir}/history.db"

    @classmethod
    def from_env(cls) -> "TestOrchConfig":
        """
        Create config from environment variables (after loading ``.env``).

        Environment Variables:
            TESTORCH_DATA_DIR: Base data directory (default: ".testorch")
            TESTORCH_CACHE_MODE: "file" or "inmemory" (default: "file")
            TESTORCH_CACHE_DIR: Cache directory
            TESTORCH_HISTORY_MODE: "inmemory" or "sqlalchemy" (default: "sqlalchemy")
            TESTORCH_HISTORY_DB_URL: Run history database URL
            TESTORCH_WORKER_MODE: "process" or "thread" (default: "process")
            TESTORCH_TIMEOUT: Wall-clock budget in seconds
            TESTORCH_MAX_RETRIES: Retries after first attempt (default: 3)
            TESTORCH_RETRY_DELAY: Seconds between attempts (default: 1)
            TESTORCH_EXPONENTIAL_BACKOFF: "true"/"false"
            TESTORCH_RETRY_ON_FAILURE: "true"/"false"
            TESTORCH_FORCE_CACHE: "true"/"false"
            TESTORCH_TRACK_MEMORY: "true"/"false" (default: "true")
            TESTORCH_TRACK_CPU: "true"/"false"
            TESTORCH_BASELINE_PATH: Baseline document path
            TESTORCH_REGRESSION_THRESHOLD: Percent (default: 5)
            TESTORCH_LOG_SQL: Log SQL statements (default: "false")
            TESTORCH_LOG_LEVEL: Logging level (default: "INFO")

        Returns:
            TestOrchConfig instance
        """
        load_dotenv()
        data_dir = os.getenv("TESTORCH_DATA_DIR", ".testorch")

        return cls(
            cache_mode=os.getenv("TESTORCH_CACHE_MODE", "file"),
            cache_dir=os.getenv("TESTORCH_CACHE_DIR"),
            history_mode=os.getenv("TESTORCH_HISTORY_MODE", "sqlalchemy"),
            history_db_url=os.getenv("TESTORCH_HISTORY_DB_URL"),
            data_dir=data_dir,
            worker_mode=os.getenv("TESTORCH_WORKER_MODE", "process"),
            timeout=_env_float("TESTORCH_TIMEOUT"),
            max_retries=int(os.getenv("TESTORCH_MAX_RETRIES", "3")),
            retry_delay=float(os.getenv("TESTORCH_RETRY_DELAY", "1")),
            exponential_backoff=_env_bool("TESTORCH_EXPONENTIAL_BACKOFF", False),
            retry_on_failure=_env_bool("TESTORCH_RETRY_ON_FAILURE", False),
            force_cache=_env_bool("TESTORCH_FORCE_CACHE", False),
            track_memory=_env_bool("TESTORCH_TRACK_MEMORY", True),
            track_cpu=_env_bool("TESTORCH_TRACK_CPU", False),
            baseline_path=os.getenv("TESTORCH_BASELINE_PATH"),
            regression_threshold=float(os.getenv("TESTORCH_REGRESSION_THRESHOLD", "5")),
            log_sql=_env_bool("TESTORCH_LOG_SQL", False),
            log_level=os.getenv("TESTORCH_LOG_LEVEL", "INFO"),
        )

    @classmethod
    def for_testing(cls) -> "TestOrchConfig":
        """
        Create config for unit tests (all in-memory, fast timings).

        Returns:
            TestOrchConfig with in-memory storage
        """
        return cls(
            cache_mode="inmemory",
            history_mode="inmemory",
            retry_delay=0.0,
            sample_interval=0.05,
            poll_interval=0.05,
            heartbeat_interval=0.5,
            grace_period=0.5,
            liveness_interval=0.1,
        )

    @classmethod
    def for_development(cls, data_dir: str = ".testorch") -> "TestOrchConfig":
        """
        Create config for development (file cache, SQLite run history).

        Args:
            data_dir: Directory for cache entries and the history database

        Returns:
            TestOrchConfig with on-disk persistence
        """
        return cls(
            cache_mode="file",
            history_mode="sqlalchemy",
            history_db_url=f"sqlite:///{data_dir}/history.db",
            data_dir=data_dir,
            log_sql=False,
        )

    @classmethod
    def for_ci(cls, data_dir: str = ".testorch", timeout: float = 1800.0) -> "TestOrchConfig":
        """
        Create config for CI (bounded runs, exponential backoff, CPU tracking).

        Args:
            data_dir: Directory for cache entries and the history database
            timeout: Wall-clock budget per attempt

        Returns:
            TestOrchConfig with on-disk persistence
        """
        return cls(
            cache_mode="file",
            history_mode="sqlalchemy",
            data_dir=data_dir,
            timeout=timeout,
            exponential_backoff=True,
            track_cpu=True,
            log_level="WARNING",
        )

    def ensure_data_dir(self) -> Path:
        """
        Ensure data directory exists.

        Returns:
            Path to data directory
        """
        path = Path(self.data_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def to_run_options(self, **overrides: Any) -> RunOptions:
        """
        Build per-run options from this config.

        Keyword overrides whose value is None are ignored, so CLI flags that
        were not given fall back to the configured values.
        """
        values: Dict[str, Any] = {
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "exponential_backoff": self.exponential_backoff,
            "retry_on_failure": self.retry_on_failure,
            "force_cache": self.force_cache,
            "track_memory": self.track_memory,
            "track_cpu": self.track_cpu,
            "baseline_path": self.baseline_path,
            "regression_threshold": self.regression_threshold,
            "update_baseline": self.update_baseline,
        }
        for key, value in overrides.items():
            if key not in values:
                raise TypeError(f"Unknown run option: {key}")
            if value is not None:
                values[key] = value
        return RunOptions(**values)

    def to_dict(self) -> dict:
        """Serialize config to dictionary."""
        return {
            "cache_mode": self.cache_mode,
            "cache_dir": self.cache_dir,
            "history_mode": self.history_mode,
            "history_db_url": self.history_db_url,
            "data_dir": self.data_dir,
            "worker_mode": self.worker_mode,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "exponential_backoff": self.exponential_backoff,
            "retry_on_failure": self.retry_on_failure,
            "force_cache": self.force_cache,
            "track_memory": self.track_memory,
            "track_cpu": self.track_cpu,
            "baseline_path": self.baseline_path,
            "regression_threshold": self.regression_threshold,
            "update_baseline": self.update_baseline,
            "sample_interval": self.sample_interval,
            "poll_interval": self.poll_interval,
            "heartbeat_interval": self.heartbeat_interval,
            "grace_period": self.grace_period,
            "monitor_ceiling": self.monitor_ceiling,
            "liveness_interval": self.liveness_interval,
            "log_sql": self.log_sql,
            "log_level": self.log_level,
        }


# Global config instance (lazily initialized)
_global_config: Optional[TestOrchConfig] = None


def get_config() -> TestOrchConfig:
    """
    Get global configuration.

    Initializes from environment on first call.
    """
    global _global_config
    if _global_config is None:
        _global_config = TestOrchConfig.from_env()
    return _global_config


def set_config(config: TestOrchConfig) -> None:
    """
    Set global configuration.

    Useful for tests to override configuration.
    """
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration; next get_config() re-reads the environment."""
    global _global_config
    _global_config = None
