"""
Retry Domain Models.

RetryState is scoped to one RetryCoordinator invocation and discarded when the
invocation returns; its history is copied into the returned outcome or into
the raised ExhaustedRetries/FatalFailure.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry configuration.

    Attributes:
        max_retries: Retries after the first attempt (attempts = max_retries + 1)
        base_delay: Seconds to wait between attempts
        exponential: Double the delay after every failed attempt
        retry_on_failure: Treat a result with failed tests as retryable
    """
    max_retries: int = 3
    base_delay: float = 1.0
    exponential: bool = False
    retry_on_failure: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_after(self, attempt: int) -> float:
        """
        Delay before the attempt following ``attempt`` (1-based).

        Fixed backoff always waits ``base_delay``; exponential waits
        ``base_delay * 2 ** (attempt - 1)``, i.e. 1s, 2s, 4s for a 1s base.
        """
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        if not self.exponential:
            return self.base_delay
        return self.base_delay * (2 ** (attempt - 1))


@dataclass(frozen=True)
class AttemptRecord:
    """One entry of the attempt history."""
    attempt: int
    timestamp: datetime
    succeeded: bool
    failure: Optional[str] = None
    failure_type: Optional[str] = None
    category: Optional[str] = None
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "attempt": self.attempt,
            "timestamp": self.timestamp.isoformat(),
            "succeeded": self.succeeded,
            "failure": self.failure,
            "failure_type": self.failure_type,
            "category": self.category,
            "duration": self.duration,
        }


@dataclass
class RetryState:
    """Mutable state of one retry invocation."""
    attempt_number: int = 0
    last_failure: Optional[BaseException] = None
    history: List[AttemptRecord] = field(default_factory=list)

    @property
    def failures(self) -> int:
        return sum(1 for record in self.history if not record.succeeded)
