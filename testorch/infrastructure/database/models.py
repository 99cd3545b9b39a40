"""
SQLAlchemy ORM Models.

Persistence layer models for the run history. Domain models live in
testorch.domain.models; repositories convert between the two.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RunRecordORM(Base):
    """One orchestrated run (table: testorch_run_history)."""

    __tablename__ = "testorch_run_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(36), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    status = Column(String(20), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False, index=True)
    finished_at = Column(DateTime, nullable=True)

    total = Column(Integer, nullable=False, default=0)
    passed = Column(Integer, nullable=False, default=0)
    failed = Column(Integer, nullable=False, default=0)
    skipped = Column(Integer, nullable=False, default=0)
    duration = Column(Float, nullable=False, default=0.0)

    attempts = Column(Integer, nullable=False, default=0)
    from_cache = Column(Boolean, nullable=False, default=False)
    fingerprint = Column(String(64), nullable=True)
    peak_memory_bytes = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RunRecordORM(run_id={self.run_id!r}, status={self.status!r})>"
