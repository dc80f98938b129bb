"""Database utilities: the store handle and its transaction scopes."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .exceptions import StorageError

logger = logging.getLogger(__name__)

# Execution option carrying the BEGIN flavour for a connection.
_BEGIN_MODE = "stockledger_begin"

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA cache_size = -8000",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA foreign_keys = ON",
)


class Base(DeclarativeBase):
    """Base model for SQLAlchemy mappings."""


def _emit_begin(conn) -> None:
    mode = conn.get_execution_options().get(_BEGIN_MODE, "DEFERRED")
    conn.exec_driver_sql(f"BEGIN {mode}")


class InventoryStore:
    """Handle on one SQLite database file.

    The store owns the engine and the session factories. Nothing is opened
    at construction time; call :meth:`open` (or use the store as a context
    manager) before running operations and :meth:`close` when done.

    Write scopes start with ``BEGIN IMMEDIATE`` so the writer lock is taken
    before the first read and concurrent writers queue on ``busy_timeout``.
    Read scopes use a deferred ``BEGIN`` and see one WAL snapshot for their
    whole duration.
    """

    def __init__(self, path: str | Path, *, busy_timeout: int = 5000, echo: bool = False) -> None:
        self.path = Path(path).expanduser()
        self.busy_timeout = busy_timeout
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._reader: Optional[sessionmaker[Session]] = None
        self._writer: Optional[sessionmaker[Session]] = None

    @property
    def url(self) -> str:
        return f"sqlite:///{self.path}"

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "InventoryStore":
        """Create the engine and make sure the schema exists."""

        if self._engine is not None:
            return self

        self.path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            self.url, echo=self.echo, connect_args={"check_same_thread": False}, future=True
        )
        event.listen(engine, "connect", self._on_connect)
        event.listen(engine, "begin", _emit_begin)

        self._reader = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self._writer = sessionmaker(
            bind=engine.execution_options(**{_BEGIN_MODE: "IMMEDIATE"}),
            autoflush=False,
            expire_on_commit=False,
        )
        self._engine = engine

        try:
            self.init_schema()
        except SQLAlchemyError as exc:
            self.close()
            raise StorageError(f"Unable to initialise database at {self.path}: {exc}") from exc
        logger.info("store.open", extra={"path": str(self.path)})
        return self

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""

        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._reader = None
        self._writer = None
        logger.info("store.close", extra={"path": str(self.path)})

    def __enter__(self) -> "InventoryStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_connect(self, dbapi_connection, connection_record) -> None:
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite's implicit one.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            for pragma in _PRAGMAS:
                cursor.execute(pragma)
            cursor.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout)}")
        finally:
            cursor.close()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageError("Inventory store is not open")
        return self._engine

    def init_schema(self) -> None:
        """Ensure that the database schema exists."""

        from . import models  # noqa: F401 - ensure models are imported

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Provide an atomic write scope around a series of operations."""

        if self._writer is None:
            raise StorageError("Inventory store is not open")
        session: Session = self._writer()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(f"Transaction failed: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def snapshot(self) -> Iterator[Session]:
        """Provide a read-only scope over the latest committed state."""

        if self._reader is None:
            raise StorageError("Inventory store is not open")
        session: Session = self._reader()
        try:
            yield session
        except SQLAlchemyError as exc:
            raise StorageError(f"Query failed: {exc}") from exc
        finally:
            session.rollback()
            session.close()
