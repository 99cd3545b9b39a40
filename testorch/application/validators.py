"""
Input Validators for run options and CLI arguments.

Design:
- Pure functions, no side effects
- Raise ConfigurationError with descriptive messages (exit code 2 at the CLI)
"""

from pathlib import Path
from typing import Optional, Sequence

from testorch.domain.errors import ConfigurationError
from testorch.domain.models.options import RunOptions


# ═══════════════════════════════════════════════════════════════════════════════
# Numeric Validators
# ═══════════════════════════════════════════════════════════════════════════════


def validate_timeout(timeout: Optional[float]) -> Optional[float]:
    """
    Validate a wall-clock budget.

    Returns:
        The timeout, or None for an unbounded inline run

    Raises:
        ConfigurationError: If the timeout is zero or negative
    """
    if timeout is None:
        return None
    if timeout <= 0:
        raise ConfigurationError(f"timeout must be > 0 seconds, got {timeout}")
    return float(timeout)


def validate_non_negative(value: float, field_name: str) -> float:
    if value < 0:
        raise ConfigurationError(f"{field_name} must be >= 0, got {value}")
    return value


def validate_limit(limit: int, max_limit: int = 1000) -> int:
    """Validate a listing limit (history command)."""
    if not isinstance(limit, int):
        raise ConfigurationError("limit must be an integer")
    if limit < 1:
        raise ConfigurationError("limit must be at least 1")
    if limit > max_limit:
        raise ConfigurationError(f"limit cannot exceed {max_limit}")
    return limit


# ═══════════════════════════════════════════════════════════════════════════════
# Composite Validators
# ═══════════════════════════════════════════════════════════════════════════════


def validate_run_options(options: RunOptions) -> RunOptions:
    """
    Validate a complete set of run options.

    Raises:
        ConfigurationError: On the first invalid option
    """
    validate_timeout(options.timeout)
    validate_non_negative(options.max_retries, "max_retries")
    validate_non_negative(options.retry_delay, "retry_delay")
    validate_non_negative(options.regression_threshold, "regression_threshold")
    if options.update_baseline and not options.baseline_path:
        raise ConfigurationError("update_baseline requires baseline_path")
    return options


def validate_input_paths(paths: Sequence[str], must_exist: bool = False) -> Sequence[str]:
    """Reject empty path strings and, with ``must_exist``, paths that do not exist."""
    for path in paths:
        if not isinstance(path, str) or not path.strip():
            raise ConfigurationError(f"Invalid input path: {path!r}")
    if must_exist:
        missing = [p for p in paths if not Path(p).exists()]
        if missing:
            raise ConfigurationError(f"Input paths do not exist: {', '.join(missing)}")
    return paths
