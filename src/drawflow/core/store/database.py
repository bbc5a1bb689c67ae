# src/drawflow/core/store/database.py
"""Database connection management for the entity store."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Self

from sqlalchemy import Connection, Engine, Executable, create_engine, event
from sqlalchemy.engine import Row
from sqlalchemy.pool import StaticPool

from drawflow.core.store.schema import metadata


class EntityDatabase:
    """Owns the SQLAlchemy engine and hands out transactional connections."""

    def __init__(self, connection_string: str, *, echo: bool = False, create_tables: bool = True) -> None:
        self.connection_string = connection_string
        self._engine: Engine | None = create_engine(connection_string, echo=echo)
        if connection_string.startswith("sqlite"):
            EntityDatabase._configure_sqlite(self._engine)
        if create_tables:
            metadata.create_all(self._engine)

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """Enable foreign key enforcement on every SQLite connection."""

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: object) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not initialized")
        return self._engine

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Yield a connection inside a transaction, committed on success."""
        with self.engine.begin() as conn:
            yield conn

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    @classmethod
    def in_memory(cls) -> Self:
        """Create an in-memory SQLite database for testing.

        Tables are created automatically. A single shared connection is
        used so every caller sees the same database.
        """
        engine = create_engine(
            "sqlite:///:memory:",
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        cls._configure_sqlite(engine)
        metadata.create_all(engine)
        instance = cls.__new__(cls)
        instance.connection_string = "sqlite:///:memory:"
        instance._engine = engine
        return instance

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, create_tables: bool = True) -> Self:
        return cls(url, echo=echo, create_tables=create_tables)


class DatabaseOps:
    """Wraps the repeated ``with db.connection() as conn`` pattern."""

    def __init__(self, db: EntityDatabase) -> None:
        self._db = db

    def execute_fetchone(self, query: Executable) -> Row[Any] | None:
        with self._db.connection() as conn:
            return conn.execute(query).fetchone()

    def execute_fetchall(self, query: Executable) -> list[Row[Any]]:
        with self._db.connection() as conn:
            return list(conn.execute(query).fetchall())

    def execute_insert(self, stmt: Executable) -> None:
        with self._db.connection() as conn:
            conn.execute(stmt)

    def execute_update(self, stmt: Executable) -> int:
        """Execute an update and return the number of affected rows."""
        with self._db.connection() as conn:
            return conn.execute(stmt).rowcount
