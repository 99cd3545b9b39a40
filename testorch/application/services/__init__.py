"""Application services."""

from .execution_supervisor import ExecutionSupervisor, SupervisedExecution
from .fingerprint_cache import FingerprintCache
from .orchestrator import RunOutcome, TestRunOrchestrator
from .result_aggregator import ResultAggregator
from .retry_coordinator import RetryCoordinator, RetryOutcome, collect_garbage

__all__ = [
    "ExecutionSupervisor",
    "SupervisedExecution",
    "FingerprintCache",
    "RunOutcome",
    "TestRunOrchestrator",
    "ResultAggregator",
    "RetryCoordinator",
    "RetryOutcome",
    "collect_garbage",
]
