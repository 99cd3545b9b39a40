"""
Tests for the table-driven failure classifier.

Run with: pytest tests/test_classification.py -v
"""

import pytest

from testorch.application.classification import FailureCategory, FailureClassifier
from testorch.domain.errors import (
    ConfigurationError,
    ExecutionTimeout,
    FailedTestsError,
    FatalFailure,
    TransientFailure,
    WorkerFault,
)

from tests.mocks import make_result


class AccessDenied(Exception):
    """Named like the access error of a foreign library."""


class FlakyNetworkError(Exception):
    pass


@pytest.fixture
def classifier() -> FailureClassifier:
    return FailureClassifier()


class TestTypeTable:
    """Classification by exception class name along the MRO."""

    @pytest.mark.parametrize("exc", [
        PermissionError("nope"),
        AccessDenied("nope"),
        FatalFailure("explicitly fatal"),
        ConfigurationError("bad option"),
    ])
    def test_fatal_types(self, classifier, exc):
        assert classifier.classify(exc) is FailureCategory.FATAL

    @pytest.mark.parametrize("exc", [
        TransientFailure("file locked"),
        TimeoutError("slow"),
        ConnectionResetError("blip"),
        MemoryError(),
        ExecutionTimeout(elapsed=2.1, timeout=2.0),
        FailedTestsError(make_result(passed=1, failed=1)),
        BlockingIOError("busy"),
    ])
    def test_transient_types(self, classifier, exc):
        assert classifier.classify(exc) is FailureCategory.TRANSIENT

    def test_most_derived_class_wins(self, classifier):
        # PermissionError is an OSError subclass; OSError alone is not in the table
        assert classifier.is_fatal(PermissionError("denied"))
        assert not classifier.is_fatal(OSError("disk hiccup"))

    def test_unknown_exception_defaults_to_transient(self, classifier):
        assert classifier.classify(RuntimeError("boom")) is FailureCategory.TRANSIENT

    def test_overrides_take_precedence(self):
        classifier = FailureClassifier(overrides={
            "FlakyNetworkError": FailureCategory.TRANSIENT,
            "RuntimeError": FailureCategory.FATAL,
        })

        assert classifier.classify(FlakyNetworkError()) is FailureCategory.TRANSIENT
        assert classifier.classify(RuntimeError("boom")) is FailureCategory.FATAL


class TestMessageMarkers:
    """Fallback on message text for unlisted exception types."""

    @pytest.mark.parametrize("message", [
        "Access is denied",
        "access denied to /var/lib/tests",
        "open(): Permission denied",
    ])
    def test_access_messages_are_fatal(self, classifier, message):
        assert classifier.classify(RuntimeError(message)) is FailureCategory.FATAL

    def test_custom_default(self):
        classifier = FailureClassifier(message_markers=(), default=FailureCategory.FATAL)

        assert classifier.classify(RuntimeError("anything")) is FailureCategory.FATAL


class TestWorkerFaults:
    """Faults from isolated workers classify by the original exception's types."""

    def test_remote_permission_error_is_fatal(self, classifier):
        fault = WorkerFault(
            "PermissionError: [Errno 13] denied",
            cause_types=["PermissionError", "OSError", "Exception"],
        )
        assert classifier.is_fatal(fault)

    def test_remote_unknown_error_falls_back_to_message(self, classifier):
        fault = WorkerFault("VendorError: ACCESS DENIED", cause_types=["VendorError", "Exception"])
        assert classifier.is_fatal(fault)

    def test_local_fault_uses_original_exception(self, classifier):
        fault = WorkerFault.from_exception(TimeoutError("slow disk"))

        assert fault.cause_types[0] == "TimeoutError"
        assert classifier.classify(fault) is FailureCategory.TRANSIENT

    def test_fault_without_type_names_is_transient(self, classifier):
        assert classifier.classify(WorkerFault("worker exited with code -9")) is FailureCategory.TRANSIENT
