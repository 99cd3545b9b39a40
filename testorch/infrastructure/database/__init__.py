"""
Run history persistence.

- models: SQLAlchemy ORM models
- repositories: SQLAlchemy and in-memory IRunHistoryRepository
- unit_of_work / inmemory_unit_of_work: IUnitOfWork implementations
- factory: mode-based UnitOfWork creation
"""

from .factory import UnitOfWorkFactory
from .inmemory_unit_of_work import InMemoryUnitOfWork
from .models import Base, RunRecordORM
from .repositories import InMemoryRunHistoryRepository, SQLAlchemyRunHistoryRepository
from .unit_of_work import SQLAlchemyUnitOfWork, dispose_engines, get_engine

__all__ = [
    "Base",
    "RunRecordORM",
    "InMemoryRunHistoryRepository",
    "SQLAlchemyRunHistoryRepository",
    "InMemoryUnitOfWork",
    "SQLAlchemyUnitOfWork",
    "UnitOfWorkFactory",
    "dispose_engines",
    "get_engine",
]
