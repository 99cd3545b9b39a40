"""
Failure classification.

Decides whether a failed attempt may be retried. The decision is data-driven:
a table mapping exception class names to categories, walked along the
exception's MRO (most derived first), then a list of message markers, then the
default category.

Class names rather than classes are used so that faults raised inside a
worker process, which only cross the process boundary as names, classify the
same way as local exceptions.
"""

from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from testorch.domain.errors import WorkerFault


class FailureCategory(Enum):
    """Retry category of a failure."""
    TRANSIENT = "transient"
    FATAL = "fatal"


DEFAULT_TYPE_TABLE: Dict[str, FailureCategory] = {
    # Access problems never fix themselves
    "PermissionError": FailureCategory.FATAL,
    "AccessDenied": FailureCategory.FATAL,
    "UnauthorizedAccessException": FailureCategory.FATAL,
    "FatalFailure": FailureCategory.FATAL,
    "ConfigurationError": FailureCategory.FATAL,
    "BaselineError": FailureCategory.FATAL,
    # File locks, network blips, memory pressure, slow machines
    "TransientFailure": FailureCategory.TRANSIENT,
    "FailedTestsError": FailureCategory.TRANSIENT,
    "ExecutionTimeout": FailureCategory.TRANSIENT,
    "TimeoutError": FailureCategory.TRANSIENT,
    "ConnectionError": FailureCategory.TRANSIENT,
    "BlockingIOError": FailureCategory.TRANSIENT,
    "InterruptedError": FailureCategory.TRANSIENT,
    "MemoryError": FailureCategory.TRANSIENT,
    "IOException": FailureCategory.TRANSIENT,
}

DEFAULT_MESSAGE_MARKERS: Tuple[Tuple[str, FailureCategory], ...] = (
    ("access is denied", FailureCategory.FATAL),
    ("access denied", FailureCategory.FATAL),
    ("permission denied", FailureCategory.FATAL),
    ("unauthorized", FailureCategory.FATAL),
    ("being used by another process", FailureCategory.TRANSIENT),
    ("resource temporarily unavailable", FailureCategory.TRANSIENT),
)


def _type_names(exc: BaseException) -> Sequence[str]:
    if isinstance(exc, WorkerFault):
        if exc.original is not None:
            return [k.__name__ for k in type(exc.original).__mro__]
        if exc.cause_types:
            return list(exc.cause_types)
    return [k.__name__ for k in type(exc).__mro__]


def _message(exc: BaseException) -> str:
    if isinstance(exc, WorkerFault):
        return exc.cause.lower()
    return str(exc).lower()


class FailureClassifier:
    """
    Table-driven failure classifier.

    The tables are copied once at construction; ``overrides`` take precedence
    over the defaults for the names they mention.

    Usage:
        classifier = FailureClassifier(overrides={"FlakyNetworkError": FailureCategory.TRANSIENT})
        if classifier.is_fatal(exc):
            raise
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, FailureCategory]] = None,
        message_markers: Optional[Iterable[Tuple[str, FailureCategory]]] = None,
        default: FailureCategory = FailureCategory.TRANSIENT,
    ):
        self._table: Dict[str, FailureCategory] = dict(DEFAULT_TYPE_TABLE)
        if overrides:
            self._table.update(overrides)
        markers = DEFAULT_MESSAGE_MARKERS if message_markers is None else tuple(message_markers)
        self._markers = tuple((marker.lower(), category) for marker, category in markers)
        self._default = default

    def classify(self, exc: BaseException) -> FailureCategory:
        for name in _type_names(exc):
            category = self._table.get(name)
            if category is not None:
                return category
        message = _message(exc)
        for marker, category in self._markers:
            if marker in message:
                return category
        return self._default

    def is_fatal(self, exc: BaseException) -> bool:
        return self.classify(exc) is FailureCategory.FATAL

    def __call__(self, exc: BaseException) -> FailureCategory:
        return self.classify(exc)
