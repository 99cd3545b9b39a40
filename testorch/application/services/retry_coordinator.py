"""
Retry Coordinator.

Runs a unit of work up to ``max_retries + 1`` times. Every failed attempt is
classified: fatal failures surface immediately without consuming the
remaining attempts, transient ones are retried after the policy's backoff
delay. Recovery actions run between attempts.

Attempt flow:
    attempt n ──► success ──────────────────────────► RetryOutcome
              └─► failure ─► FATAL ─────────────────► FatalFailure(history)
                          └─► TRANSIENT, n < max ───► recovery, sleep, attempt n+1
                          └─► TRANSIENT, n == max ──► ExhaustedRetries(last, history)

The delay is applied only between attempts, never after the last one.
"""

import gc
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from testorch.application.classification import FailureCategory, FailureClassifier
from testorch.domain.errors import ExhaustedRetries, FailedTestsError, FatalFailure
from testorch.domain.models.results import TestResult
from testorch.domain.models.retry import AttemptRecord, RetryPolicy, RetryState

logger = logging.getLogger(__name__)

T = TypeVar("T")

RecoveryAction = Callable[[RetryState], None]


def collect_garbage(state: RetryState) -> None:
    """Recovery action: force a full collection before retrying after memory pressure."""
    collected = gc.collect()
    logger.debug(f"Garbage collection before retry freed {collected} objects")


@dataclass
class RetryOutcome(Generic[T]):
    """Value of the successful attempt and the full attempt history."""
    value: T
    history: List[AttemptRecord] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return len(self.history)


class RetryCoordinator:
    """
    Bounded retry with failure classification.

    Attributes:
        classifier: Decides whether a failure is transient or fatal
        recovery_actions: Called with the RetryState before every retry
        sleep: Delay function (injected so tests do not wait)
    """

    def __init__(
        self,
        classifier: Optional[FailureClassifier] = None,
        recovery_actions: Sequence[RecoveryAction] = (collect_garbage,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.classifier = classifier or FailureClassifier()
        self.recovery_actions = tuple(recovery_actions)
        self._sleep = sleep

    def execute(
        self,
        work_fn: Callable[[], T],
        policy: RetryPolicy,
        extract_result: Optional[Callable[[T], Optional[TestResult]]] = None,
    ) -> RetryOutcome[T]:
        """
        Run ``work_fn`` until it succeeds or the policy gives up.

        Args:
            work_fn: Zero-argument unit of work
            policy: Attempt count, backoff and retry-on-failure flag
            extract_result: Maps the work's value to its TestResult for the
                retry-on-failure check (identity by default)

        Returns:
            RetryOutcome of the first successful attempt

        Raises:
            FatalFailure: On the first fatal failure
            ExhaustedRetries: When every attempt failed
        """
        state = RetryState()
        max_attempts = policy.max_attempts

        while state.attempt_number < max_attempts:
            state.attempt_number += 1
            attempt = state.attempt_number
            started = time.monotonic()
            try:
                value = work_fn()
                if policy.retry_on_failure:
                    self._check_failed_tests(value, extract_result)
            except Exception as exc:
                failure: BaseException = exc
            else:
                state.history.append(AttemptRecord(
                    attempt=attempt,
                    timestamp=datetime.now(),
                    succeeded=True,
                    duration=time.monotonic() - started,
                ))
                if attempt > 1:
                    logger.info(f"Attempt {attempt}/{max_attempts} succeeded")
                return RetryOutcome(value=value, history=list(state.history))

            category = self.classifier.classify(failure)
            state.last_failure = failure
            state.history.append(AttemptRecord(
                attempt=attempt,
                timestamp=datetime.now(),
                succeeded=False,
                failure=str(failure),
                failure_type=type(failure).__name__,
                category=category.value,
                duration=time.monotonic() - started,
            ))

            if category is FailureCategory.FATAL:
                logger.error(
                    f"Attempt {attempt}/{max_attempts} failed fatally "
                    f"({type(failure).__name__}: {failure}); not retrying"
                )
                raise FatalFailure(str(failure), cause=failure, history=state.history) from failure

            if attempt >= max_attempts:
                break

            delay = policy.delay_after(attempt)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed ({type(failure).__name__}: {failure}); "
                f"retrying in {delay:.1f}s"
            )
            self._recover(state)
            if delay > 0:
                self._sleep(delay)

        logger.error(f"All {max_attempts} attempts failed; last failure: {state.last_failure}")
        raise ExhaustedRetries(state.last_failure, state.history) from state.last_failure

    @staticmethod
    def _check_failed_tests(value, extract_result) -> None:
        result = extract_result(value) if extract_result else value
        if isinstance(result, TestResult) and result.has_failures:
            raise FailedTestsError(result)

    def _recover(self, state: RetryState) -> None:
        for action in self.recovery_actions:
            try:
                action(state)
            except Exception as e:
                logger.warning(
                    f"Recovery action {getattr(action, '__name__', action)} failed "
                    f"after {state.failures} failed attempt(s): {e}"
                )
