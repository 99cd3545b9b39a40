"""Run history repository implementations."""

from .inmemory import InMemoryRunHistoryRepository
from .run_history_repository import SQLAlchemyRunHistoryRepository

__all__ = [
    "InMemoryRunHistoryRepository",
    "SQLAlchemyRunHistoryRepository",
]
