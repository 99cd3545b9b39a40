"""Per-run options recognised by the orchestrator and the CLI."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .retry import RetryPolicy


@dataclass(frozen=True)
class RunOptions:
    """
    Options for one orchestrated run.

    Attributes:
        timeout: Wall-clock budget in seconds; None runs the work inline
        max_retries: Retries after the first attempt
        retry_delay: Base delay between attempts (seconds)
        exponential_backoff: Double the delay after each failed attempt
        retry_on_failure: Retry runs that report failed tests
        force_cache: Bypass the fingerprint cache (always execute)
        track_memory / track_cpu: Resource monitor metrics to sample
        baseline_path: Baseline document to compare against
        regression_threshold: Percent change that counts as regression/improvement
        update_baseline: Overwrite the baseline with this run after success
    """
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

    @property
    def monitoring_enabled(self) -> bool:
        return self.track_memory or self.track_cpu

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.retry_delay,
            exponential=self.exponential_backoff,
            retry_on_failure=self.retry_on_failure,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
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
