"""
SQLAlchemy Unit of Work.

Owns one Session per ``with`` block and exposes the run history repository
bound to it. Engines are created once per database URL and the schema is
created on first use.

Usage:
    with SQLAlchemyUnitOfWork("sqlite:///.testorch/history.db") as uow:
        uow.runs.add(record)
        uow.commit()
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from testorch.domain.interfaces.unit_of_work import IUnitOfWork
from testorch.infrastructure.database.models import Base
from testorch.infrastructure.database.repositories import SQLAlchemyRunHistoryRepository

logger = logging.getLogger(__name__)

_engines: Dict[str, Engine] = {}
_engines_lock = threading.Lock()


def _ensure_sqlite_parent(db_url: str) -> None:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return
    database = url.database
    if database and database != ":memory:" and not database.startswith("file:"):
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def get_engine(db_url: str, echo: bool = False) -> Engine:
    """Return the shared engine for ``db_url``, creating tables on first use."""
    with _engines_lock:
        engine = _engines.get(db_url)
        if engine is None:
            _ensure_sqlite_parent(db_url)
            engine = create_engine(db_url, echo=echo)
            Base.metadata.create_all(engine)
            _engines[db_url] = engine
            logger.debug(f"Created engine for {engine.url.render_as_string(hide_password=True)}")
        return engine


def dispose_engines() -> None:
    """Dispose every cached engine (tests, process shutdown)."""
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """SQLAlchemy-backed IUnitOfWork."""

    def __init__(self, db_url: str, echo: bool = False):
        self._db_url = db_url
        self._echo = echo
        self._session_factory = sessionmaker(bind=get_engine(db_url, echo=echo))
        self._session: Optional[Session] = None

    def __enter__(self) -> "SQLAlchemyUnitOfWork":
        self._session = self._session_factory()
        self.runs = SQLAlchemyRunHistoryRepository(self._session)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            self.rollback()
        finally:
            if self._session is not None:
                self._session.close()
                self._session = None

    def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("Unit of work is not active; use it as a context manager")
        self._session.commit()

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()
