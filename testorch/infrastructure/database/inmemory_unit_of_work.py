"""
In-Memory Unit of Work.

Backed by an InMemoryRunHistoryRepository. Writes are visible as soon as they
are made; ``commit`` and ``rollback`` only exist to honour the IUnitOfWork
contract. Pass the same repository to several units of work to share state.
"""

from typing import Optional

from testorch.domain.interfaces.unit_of_work import IUnitOfWork
from testorch.infrastructure.database.repositories import InMemoryRunHistoryRepository


class InMemoryUnitOfWork(IUnitOfWork):
    """Non-transactional IUnitOfWork for tests and throwaway runs."""

    def __init__(self, runs: Optional[InMemoryRunHistoryRepository] = None):
        self.runs = runs if runs is not None else InMemoryRunHistoryRepository()
        self.committed = 0

    def commit(self) -> None:
        self.committed += 1

    def rollback(self) -> None:
        return None
