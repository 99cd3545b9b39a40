"""
Error taxonomy for test run orchestration.

Every failure that can leave the orchestration core is one of the types below.
Cache and monitoring faults are absorbed where they happen; supervisor and retry
failures are surfaced with enough context (elapsed time, attempt history, last
cause) for the caller to decide whether to rerun manually.

Hierarchy:
    TestOrchError
    ├── TransientFailure      retried with backoff
    ├── FatalFailure          surfaced immediately, retries never consumed
    ├── ExecutionTimeout      wall-clock budget exceeded
    ├── WorkerFault           the workload raised before producing a result
    ├── FailedTestsError      tests failed and the caller opted into retrying
    ├── ExhaustedRetries      every attempt failed
    ├── CacheFault            fingerprint cache read/write failure
    ├── ConfigurationError    invalid options or setup
    └── BaselineError         unreadable baseline document
"""

from typing import List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from testorch.domain.models.results import TestResult
    from testorch.domain.models.retry import AttemptRecord


class TestOrchError(Exception):
    """Base exception for all orchestration errors."""

    __test__ = False


class TransientFailure(TestOrchError):
    """Failure expected to succeed on retry (file lock, network blip, memory pressure)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class FatalFailure(TestOrchError):
    """
    Failure that must not be retried (permission or access denied).

    Raised by the retry coordinator as soon as a fatal failure is observed,
    carrying the attempts made so far.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        history: Optional[Sequence["AttemptRecord"]] = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.history: List["AttemptRecord"] = list(history or [])

    @property
    def attempts(self) -> int:
        return len(self.history)


class ExecutionTimeout(TestOrchError):
    """The worker did not finish within its wall-clock budget."""

    def __init__(self, elapsed: float, timeout: float):
        super().__init__(
            f"Test execution timed out after {elapsed:.1f}s (budget {timeout:.1f}s)"
        )
        self.elapsed = elapsed
        self.timeout = timeout


class WorkerFault(TestOrchError):
    """
    The workload itself raised before producing a result.

    When the worker runs in a separate process the original exception object
    cannot cross the boundary, so the fault keeps its type names (most derived
    first) and formatted traceback for classification and diagnostics.
    """

    def __init__(
        self,
        cause: str,
        cause_types: Optional[Sequence[str]] = None,
        traceback_text: Optional[str] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(f"Worker fault: {cause}")
        self.cause = cause
        self.cause_types = tuple(cause_types or ())
        self.traceback_text = traceback_text
        self.original = original

    @classmethod
    def from_exception(cls, exc: BaseException, traceback_text: Optional[str] = None) -> "WorkerFault":
        """Build a fault from a live exception, recording its MRO names."""
        names = [klass.__name__ for klass in type(exc).__mro__ if klass not in (object, BaseException)]
        return cls(
            cause=f"{type(exc).__name__}: {exc}",
            cause_types=names,
            traceback_text=traceback_text,
            original=exc,
        )


class FailedTestsError(TestOrchError):
    """A run completed with failed tests while retry-on-failure was requested."""

    def __init__(self, result: "TestResult"):
        super().__init__(f"{result.failed} of {result.total} tests failed")
        self.result = result


class ExhaustedRetries(TestOrchError):
    """All attempts failed; carries the last failure and full attempt history."""

    def __init__(self, last_failure: BaseException, history: Sequence["AttemptRecord"]):
        super().__init__(
            f"All {len(history)} attempts failed; last failure: {last_failure}"
        )
        self.last_failure = last_failure
        self.history: List["AttemptRecord"] = list(history)

    @property
    def attempts(self) -> int:
        return len(self.history)


class CacheFault(TestOrchError):
    """Fingerprint cache could not be read or written."""
    pass


class ConfigurationError(TestOrchError):
    """Invalid run options or environment setup."""
    pass


class BaselineError(TestOrchError):
    """A baseline document exists but cannot be read."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Cannot read baseline {path}: {message}")
        self.path = path
