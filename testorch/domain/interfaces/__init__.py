"""Domain Interfaces - abstract contracts implemented by the infrastructure layer."""

from .cache_store import ICacheStore
from .output_sink import IOutputSink
from .repositories import IRunHistoryRepository
from .resource_monitor import IResourceMonitor
from .test_runner import ITestRunner
from .unit_of_work import IUnitOfWork

__all__ = [
    "ICacheStore",
    "IOutputSink",
    "IRunHistoryRepository",
    "IResourceMonitor",
    "ITestRunner",
    "IUnitOfWork",
]
