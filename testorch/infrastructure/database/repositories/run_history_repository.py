"""
SQLAlchemy Run History Repository Implementation.

Implements IRunHistoryRepository for persistent run records.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from testorch.domain.interfaces.repositories import IRunHistoryRepository
from testorch.domain.models.run_history import RunRecord, RunStatistics, RunStatus
from testorch.infrastructure.database.models import RunRecordORM


class SQLAlchemyRunHistoryRepository(IRunHistoryRepository):
    """
    SQLAlchemy implementation of IRunHistoryRepository.

    Stores one row per orchestrated run in the testorch_run_history table.
    """

    def __init__(self, session: Session):
        self._session = session

    def _to_domain(self, orm: RunRecordORM) -> RunRecord:
        """Convert ORM model to domain model."""
        return RunRecord(
            id=orm.id,
            run_id=orm.run_id,
            name=orm.name,
            status=RunStatus(orm.status),
            started_at=orm.started_at,
            finished_at=orm.finished_at,
            total=orm.total,
            passed=orm.passed,
            failed=orm.failed,
            skipped=orm.skipped,
            duration=orm.duration,
            attempts=orm.attempts,
            from_cache=orm.from_cache,
            fingerprint=orm.fingerprint,
            peak_memory_bytes=orm.peak_memory_bytes,
            error=orm.error,
        )

    def _to_orm(self, record: RunRecord) -> RunRecordORM:
        """Convert domain model to ORM model."""
        return RunRecordORM(
            id=record.id,
            run_id=record.run_id,
            name=record.name,
            status=record.status.value,
            started_at=record.started_at,
            finished_at=record.finished_at,
            total=record.total,
            passed=record.passed,
            failed=record.failed,
            skipped=record.skipped,
            duration=record.duration,
            attempts=record.attempts,
            from_cache=record.from_cache,
            fingerprint=record.fingerprint,
            peak_memory_bytes=record.peak_memory_bytes,
            error=record.error,
        )

    def add(self, record: RunRecord) -> RunRecord:
        """Add a new run record."""
        orm = self._to_orm(record)
        self._session.add(orm)
        self._session.flush()
        return self._to_domain(orm)

    def get_by_run_id(self, run_id: str) -> Optional[RunRecord]:
        """Get record by run UUID."""
        orm = (
            self._session.query(RunRecordORM)
            .filter(RunRecordORM.run_id == run_id)
            .first()
        )
        return self._to_domain(orm) if orm else None

    def list_recent(self, limit: int = 20) -> List[RunRecord]:
        """Most recent records first."""
        orms = (
            self._session.query(RunRecordORM)
            .order_by(RunRecordORM.started_at.desc(), RunRecordORM.id.desc())
            .limit(limit)
            .all()
        )
        return [self._to_domain(orm) for orm in orms]

    def statistics(self) -> RunStatistics:
        """Aggregate statistics over all stored records."""
        counts = dict(
            self._session.query(RunRecordORM.status, func.count(RunRecordORM.id))
            .group_by(RunRecordORM.status)
            .all()
        )
        total_runs = sum(counts.values())
        cache_hits = (
            self._session.query(func.count(RunRecordORM.id))
            .filter(RunRecordORM.from_cache.is_(True))
            .scalar()
        ) or 0
        average_duration = (
            self._session.query(func.avg(RunRecordORM.duration)).scalar()
        ) or 0.0
        return RunStatistics(
            total_runs=total_runs,
            cache_hits=cache_hits,
            passed_runs=counts.get(RunStatus.PASSED.value, 0),
            failed_runs=counts.get(RunStatus.FAILED.value, 0),
            timed_out_runs=counts.get(RunStatus.TIMEOUT.value, 0),
            faulted_runs=counts.get(RunStatus.FAULTED.value, 0),
            average_duration=float(average_duration),
        )

    def delete_before(self, before: datetime) -> int:
        """Delete records started before a given time."""
        count = (
            self._session.query(RunRecordORM)
            .filter(RunRecordORM.started_at < before)
            .delete(synchronize_session=False)
        )
        return count
