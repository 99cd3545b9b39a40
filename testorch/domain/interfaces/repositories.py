"""Repository interfaces for persisted run data."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from testorch.domain.models.run_history import RunRecord, RunStatistics


class IRunHistoryRepository(ABC):
    """Storage of RunRecord entities."""

    @abstractmethod
    def add(self, record: RunRecord) -> RunRecord:
        """Add a record and return it with its primary key assigned."""
        ...

    @abstractmethod
    def get_by_run_id(self, run_id: str) -> Optional[RunRecord]:
        """Get a record by run UUID."""
        ...

    @abstractmethod
    def list_recent(self, limit: int = 20) -> List[RunRecord]:
        """Most recent records first."""
        ...

    @abstractmethod
    def statistics(self) -> RunStatistics:
        """Aggregate statistics over all stored records."""
        ...

    @abstractmethod
    def delete_before(self, before: datetime) -> int:
        """Delete records started before ``before``; return how many were deleted."""
        ...
