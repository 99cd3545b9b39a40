"""
Unit of Work Interface.

Groups repository operations into one transaction. Used as a context manager;
leaving the block without ``commit()`` rolls back.

Usage:
    with uow_factory() as uow:
        uow.runs.add(record)
        uow.commit()
"""

from abc import ABC, abstractmethod

from testorch.domain.interfaces.repositories import IRunHistoryRepository


class IUnitOfWork(ABC):
    """Transaction boundary over the run history repositories."""

    runs: IRunHistoryRepository

    def __enter__(self) -> "IUnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Commit pending changes."""
        ...

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes."""
        ...
