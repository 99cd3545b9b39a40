"""
Application Layer - Service implementations and run orchestration.

This layer coordinates the domain objects: caching, retrying, supervising,
aggregating, and the factories that wire them from configuration.
"""

from .classification import FailureCategory, FailureClassifier
from .services import (
    ExecutionSupervisor,
    FingerprintCache,
    ResultAggregator,
    RetryCoordinator,
    RunOutcome,
    TestRunOrchestrator,
)
from .factories import OrchestratorFactory

__all__ = [
    "FailureCategory",
    "FailureClassifier",
    "ExecutionSupervisor",
    "FingerprintCache",
    "ResultAggregator",
    "RetryCoordinator",
    "RunOutcome",
    "TestRunOrchestrator",
    "OrchestratorFactory",
]
