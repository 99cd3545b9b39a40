"""
Unit of Work Factory.

Creates the IUnitOfWork implementation matching the configured history mode.
"""

from typing import Optional

from testorch.domain.interfaces.unit_of_work import IUnitOfWork
from .inmemory_unit_of_work import InMemoryUnitOfWork
from .repositories import InMemoryRunHistoryRepository
from .unit_of_work import SQLAlchemyUnitOfWork

DEFAULT_DB_URL = "sqlite:///.testorch/history.db"


class UnitOfWorkFactory:
    """
    Factory for creating the appropriate UnitOfWork implementation.

    Usage:
        # For testing (no database)
        uow = UnitOfWorkFactory.create_inmemory()

        # For development (SQLite file)
        uow = UnitOfWorkFactory.create_sqlalchemy("sqlite:///.testorch/history.db")

        # Config-based
        uow = UnitOfWorkFactory.create(
            mode=config.history_mode,
            db_url=config.history_db_url,
        )
    """

    @staticmethod
    def create_inmemory(runs: Optional[InMemoryRunHistoryRepository] = None) -> InMemoryUnitOfWork:
        """
        Create in-memory UoW.

        Args:
            runs: Repository to share between units of work (fresh if None)
        """
        return InMemoryUnitOfWork(runs)

    @staticmethod
    def create_sqlalchemy(db_url: Optional[str] = None, echo: bool = False) -> SQLAlchemyUnitOfWork:
        """
        Create SQLAlchemy UoW.

        Args:
            db_url: Database URL (SQLite under .testorch if None)
            echo: If True, log SQL statements
        """
        return SQLAlchemyUnitOfWork(db_url or DEFAULT_DB_URL, echo=echo)

    @staticmethod
    def create(
        mode: str = "inmemory",
        db_url: Optional[str] = None,
        echo: bool = False,
    ) -> IUnitOfWork:
        """
        Create UoW based on mode configuration.

        Args:
            mode: "inmemory" or "sqlalchemy"
            db_url: Database URL (sqlalchemy mode)
            echo: If True, log SQL statements (sqlalchemy only)

        Raises:
            ValueError: If mode is unknown
        """
        if mode == "inmemory":
            return UnitOfWorkFactory.create_inmemory()

        elif mode == "sqlalchemy":
            return UnitOfWorkFactory.create_sqlalchemy(db_url, echo=echo)

        else:
            raise ValueError(
                f"Unknown storage mode: {mode}. Use 'inmemory' or 'sqlalchemy'"
            )

    @staticmethod
    def create_for_testing() -> InMemoryUnitOfWork:
        """Fresh InMemoryUnitOfWork for test isolation."""
        return UnitOfWorkFactory.create_inmemory()
