"""
testorch - test run orchestration.

Runs a test workload under a wall-clock budget while sampling its resource
usage, retries transient failures, skips re-execution when the inputs are
unchanged, and reduces results into quality and regression reports.

Usage:
    from testorch import OrchestratorFactory, RunOptions, WorkSpec
    from testorch.infrastructure.runners import PytestRunner

    orchestrator = OrchestratorFactory.create()
    outcome = orchestrator.run(
        WorkSpec.for_runner(PytestRunner(), ["tests/"]),
        RunOptions(timeout=600),
    )
"""

__version__ = "0.1.0"

from testorch.application import OrchestratorFactory, RunOutcome, TestRunOrchestrator
from testorch.config import TestOrchConfig
from testorch.domain.models import RunOptions, TestFilter, TestResult, WorkSpec

__all__ = [
    "OrchestratorFactory",
    "RunOutcome",
    "TestRunOrchestrator",
    "TestOrchConfig",
    "RunOptions",
    "TestFilter",
    "TestResult",
    "WorkSpec",
]
