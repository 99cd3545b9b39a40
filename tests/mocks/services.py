"""
Fake infrastructure services.

These fakes implement the REAL interfaces from testorch.domain.interfaces, so
services under test cannot tell them apart from the production implementations.
"""

import threading
from typing import List, Optional, Sequence

from testorch.domain.errors import CacheFault
from testorch.domain.interfaces.cache_store import ICacheStore
from testorch.domain.interfaces.resource_monitor import IResourceMonitor
from testorch.domain.interfaces.test_runner import ITestRunner
from testorch.domain.interfaces.unit_of_work import IUnitOfWork
from testorch.domain.models.cache import CacheEntry
from testorch.domain.models.performance import PerformanceSummary
from testorch.domain.models.results import TestResult
from testorch.domain.models.work import TestFilter


class RecordingMonitor(IResourceMonitor):
    """Records start/stop calls and returns a fixed summary."""

    def __init__(self, summary: Optional[PerformanceSummary] = None):
        self.summary = summary or PerformanceSummary(
            peak_memory_bytes=64 * 1024 * 1024,
            average_memory_bytes=48.0 * 1024 * 1024,
            average_cpu_percent=12.5,
            sample_count=4,
        )
        self.started: List[int] = []
        self.stopped = 0
        self._lock = threading.Lock()

    def start(self, target_pid: int):
        with self._lock:
            self.started.append(target_pid)
            return len(self.started)

    def stop(self, handle) -> PerformanceSummary:
        with self._lock:
            self.stopped += 1
        return self.summary


class BrokenCacheStore(ICacheStore):
    """Cache store whose every operation fails; counts how often it was touched."""

    def __init__(self):
        self.touched = 0

    def _fail(self):
        self.touched += 1
        raise CacheFault("disk on fire")

    def load(self, key: str) -> Optional[CacheEntry]:
        self._fail()

    def save(self, entry: CacheEntry) -> None:
        self._fail()

    def delete(self, key: str) -> bool:
        self._fail()

    def clear(self) -> int:
        self._fail()

    def count(self) -> int:
        self._fail()


class BrokenUnitOfWork(IUnitOfWork):
    """Unit of work that cannot be opened (unreachable history database)."""

    def __enter__(self):
        raise ConnectionError("history database unavailable")

    def commit(self) -> None:
        raise AssertionError("commit must not be reached")

    def rollback(self) -> None:
        return None


class StaticRunner(ITestRunner):
    """Test runner returning a fixed result and recording its arguments."""

    def __init__(self, result: TestResult):
        self.result = result
        self.calls: List[tuple] = []

    def run_tests(
        self,
        paths: Sequence[str],
        test_filter: TestFilter,
        verbosity: int = 0,
        sink=None,
    ) -> TestResult:
        self.calls.append((tuple(paths), test_filter, verbosity))
        if sink is not None:
            sink.write(f"ran {len(paths)} path(s)")
        return self.result
