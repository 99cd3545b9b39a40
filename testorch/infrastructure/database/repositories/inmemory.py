"""In-memory run history repository (tests, ephemeral runs)."""

import copy
import threading
from datetime import datetime
from typing import Dict, List, Optional

from testorch.domain.interfaces.repositories import IRunHistoryRepository
from testorch.domain.models.run_history import RunRecord, RunStatistics, RunStatus


class InMemoryRunHistoryRepository(IRunHistoryRepository):
    """
    Dict-backed IRunHistoryRepository.

    Stores copies, so callers mutating a record after ``add`` do not change
    what is stored. Thread-safe.
    """

    def __init__(self):
        self._records: Dict[str, RunRecord] = {}
        self._lock = threading.Lock()
        self._pk_counter = 0

    def add(self, record: RunRecord) -> RunRecord:
        with self._lock:
            stored = copy.copy(record)
            if stored.id is None:
                self._pk_counter += 1
                stored.id = self._pk_counter
            self._records[stored.run_id] = stored
            return copy.copy(stored)

    def get_by_run_id(self, run_id: str) -> Optional[RunRecord]:
        record = self._records.get(run_id)
        return copy.copy(record) if record else None

    def list_recent(self, limit: int = 20) -> List[RunRecord]:
        with self._lock:
            records = sorted(
                self._records.values(),
                key=lambda r: (r.started_at, r.id or 0),
                reverse=True,
            )
        return [copy.copy(r) for r in records[:limit]]

    def statistics(self) -> RunStatistics:
        with self._lock:
            records = list(self._records.values())
        if not records:
            return RunStatistics()

        def count(status: RunStatus) -> int:
            return sum(1 for r in records if r.status == status)

        return RunStatistics(
            total_runs=len(records),
            cache_hits=sum(1 for r in records if r.from_cache),
            passed_runs=count(RunStatus.PASSED),
            failed_runs=count(RunStatus.FAILED),
            timed_out_runs=count(RunStatus.TIMEOUT),
            faulted_runs=count(RunStatus.FAULTED),
            average_duration=sum(r.duration for r in records) / len(records),
        )

    def delete_before(self, before: datetime) -> int:
        with self._lock:
            doomed = [k for k, r in self._records.items() if r.started_at < before]
            for key in doomed:
                del self._records[key]
            return len(doomed)
