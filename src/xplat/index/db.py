"""Database engine and session helpers for the index store.

SQLite in WAL mode gives the single-writer/multiple-reader discipline the
index needs: analyzers read through ordinary sessions while the indexer
writes inside ``BEGIN IMMEDIATE`` transactions, so a run never observes a
half-written snapshot.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine


class Database:
    """
    Database connection manager with WAL mode.

    Usage::

        db = Database(Path("index.db"))
        db.create_all()

        with db.session() as session:
            module = session.get(Module, 1)

        with db.immediate_transaction() as session:
            session.add(Module(...))
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize database with path to SQLite file."""
        self.db_path = db_path
        self.engine = self._create_engine()

    def _create_engine(self) -> Engine:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        event.listen(engine, "connect", _configure_pragmas)
        return engine

    def create_all(self) -> None:
        """Create all tables from SQLModel metadata."""
        # Register table classes on the shared metadata
        from xplat.index import models  # noqa: F401

        SQLModel.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        """Drop all tables. Use with caution."""
        SQLModel.metadata.drop_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """ORM session for reads."""
        with Session(self.engine) as session:
            yield session

    @contextmanager
    def immediate_transaction(self) -> Generator[Session, None, None]:
        """
        Session with BEGIN IMMEDIATE for serializable writes.

        BEGIN IMMEDIATE acquires a RESERVED lock immediately,
        blocking other writers but allowing readers.

        The session auto-commits on successful exit and rolls back
        on exception.
        """
        with Session(self.engine) as session:
            session.execute(text("BEGIN IMMEDIATE"))
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def dispose(self) -> None:
        """Close pooled connections."""
        self.engine.dispose()


def _configure_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
    """Configure SQLite for concurrent access."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")  # 30 second wait
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
