"""Domain Models - Entities and Value Objects."""

from .work import (
    WorkSpec,
    TestFilter,
)
from .results import (
    TestOutcome,
    TestRecord,
    TestResult,
)
from .performance import (
    PerformanceSample,
    PerformanceSummary,
)
from .cache import (
    Fingerprint,
    CacheEntry,
)
from .retry import (
    RetryPolicy,
    RetryState,
    AttemptRecord,
)
from .baseline import (
    EnvironmentInfo,
    TestSummary,
    BaselinePerformance,
    BaselineRecord,
    TestDurationChange,
    RegressionComparison,
)
from .report import QualityReport
from .options import RunOptions
from .run_history import (
    RunRecord,
    RunStatus,
    RunStatistics,
)

__all__ = [
    # Work
    "WorkSpec",
    "TestFilter",
    # Results
    "TestOutcome",
    "TestRecord",
    "TestResult",
    # Performance
    "PerformanceSample",
    "PerformanceSummary",
    # Fingerprint cache
    "Fingerprint",
    "CacheEntry",
    # Retry
    "RetryPolicy",
    "RetryState",
    "AttemptRecord",
    # Baseline
    "EnvironmentInfo",
    "TestSummary",
    "BaselinePerformance",
    "BaselineRecord",
    "TestDurationChange",
    "RegressionComparison",
    # Reporting
    "QualityReport",
    "RunOptions",
    # Run history
    "RunRecord",
    "RunStatus",
    "RunStatistics",
]
