"""Tracking store adapter: engine management and a bulk writer over SQLAlchemy Core.

This module provides:
- Database: engine manager, with WAL mode and busy timeout for SQLite
- BulkWriter: one connection + one transaction exposing the narrow set of
  statements the tracker issues (insert-or-ignore, insert-select,
  conditional update/delete, count, ordered select)
- chunked(): lazy fixed-size batching for independently committed writes
- Error translation from SQLAlchemy exceptions to StoreError

The adapter owns the mechanics of executing reads and writes; what they mean
belongs to the tracker. No retries happen here: every failure surfaces
immediately as a StoreError.
"""

from __future__ import annotations

import functools
from collections.abc import Generator, Iterable, Iterator, Sequence
from contextlib import contextmanager
from itertools import islice
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from sqlalchemy import case, create_engine, event, func, inspect, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import StaticPool

from indexledger.core.errors import InternalError, StoreError

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Engine, Select, Table
    from sqlalchemy.engine import Connection
    from sqlalchemy.types import TypeEngine

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_BUSY_TIMEOUT_MS = 30000


def chunked(iterable: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield lists of at most ``size`` items without materializing the input."""
    if size < 1:
        raise ValueError(f"Chunk size must be >= 1, got {size}")
    it = iter(iterable)
    while batch := list(islice(it, size)):
        yield batch


def _reason(error: SQLAlchemyError) -> str:
    orig = getattr(error, "orig", None)
    return str(orig) if orig is not None else str(error)


@contextmanager
def translate_store_errors(operation: str) -> Generator[None, None, None]:
    """Re-raise SQLAlchemy failures as StoreError.

    Connectivity, lock and pool timeouts map to STORE_UNAVAILABLE; anything
    else the store rejects maps to STORE_WRITE_FAILED.
    """
    try:
        yield
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        logger.warning("store_error", operation=operation, kind="unavailable", error=_reason(e))
        raise StoreError.unavailable(operation, _reason(e)) from e
    except SQLAlchemyError as e:
        logger.warning("store_error", operation=operation, kind="write_failed", error=_reason(e))
        raise StoreError.write_failed(operation, _reason(e)) from e


class Database:
    """Engine manager for the ledger store.

    Any SQLAlchemy URL works; SQLite additionally gets WAL mode and a busy
    timeout so concurrent tracker calls from several workers queue on the
    write lock instead of failing.
    """

    def __init__(self, url: str, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> None:
        self.url = url
        self._busy_timeout_ms = busy_timeout_ms
        self.engine = self._create_engine()

    @classmethod
    def from_path(cls, db_path: Path, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> Database:
        """SQLite database stored at ``db_path``."""
        return cls(f"sqlite:///{db_path}", busy_timeout_ms=busy_timeout_ms)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def _create_engine(self) -> Engine:
        if not self.url.startswith("sqlite"):
            return create_engine(self.url, pool_pre_ping=True)

        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if self.url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees a fresh empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(self.url, **kwargs)
        event.listen(
            engine,
            "connect",
            functools.partial(_configure_pragmas, busy_timeout_ms=self._busy_timeout_ms),
        )
        return engine

    def create_table(self, table: Table) -> None:
        """Create a table and its indexes if missing."""
        with translate_store_errors("create_table"):
            table.create(self.engine, checkfirst=True)

    def drop_table(self, table: Table) -> None:
        with translate_store_errors("drop_table"):
            table.drop(self.engine, checkfirst=True)

    def has_table(self, table: Table) -> bool:
        with translate_store_errors("has_table"), self.engine.connect() as conn:
            return bool(self.engine.dialect.has_table(conn, table.name))

    def column_types(self, table_name: str) -> dict[str, TypeEngine[Any]]:
        """Column types of an existing table, keyed by column name."""
        with translate_store_errors("inspect_table"):
            columns = inspect(self.engine).get_columns(table_name)
        return {column["name"]: column["type"] for column in columns}

    @contextmanager
    def bulk_writer(self, operation: str = "write") -> Generator[BulkWriter, None, None]:
        """
        Writer bound to one transaction.

        Auto-commits on successful exit, rolls back on exception. SQLAlchemy
        errors, including a failed commit, surface as StoreError.
        """
        with translate_store_errors(operation):
            writer = BulkWriter(self.engine)
            try:
                yield writer
                writer.commit()
            except Exception:
                writer.rollback()
                raise
            finally:
                writer.close()

    @contextmanager
    def reader(self, operation: str = "read") -> Generator[BulkWriter, None, None]:
        """Writer used for queries only; its transaction is always rolled back."""
        with translate_store_errors(operation):
            writer = BulkWriter(self.engine)
            try:
                yield writer
            finally:
                writer.rollback()
                writer.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _configure_pragmas(dbapi_conn: Any, _connection_record: Any, busy_timeout_ms: int) -> None:
    """Configure SQLite for concurrent access."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.close()


class BulkWriter:
    """Statement executor over one connection and one transaction, using Core SQL."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.conn: Connection = engine.connect()
        self.transaction = self.conn.begin()

    def _insert_ignore(self, table: Table, conflict_columns: Sequence[str]) -> Any:
        dialect = self.conn.dialect.name
        if dialect == "sqlite":
            return sqlite.insert(table).on_conflict_do_nothing(index_elements=list(conflict_columns))
        if dialect == "postgresql":
            return postgresql.insert(table).on_conflict_do_nothing(
                index_elements=list(conflict_columns)
            )
        if dialect in ("mysql", "mariadb"):
            return table.insert().prefix_with("IGNORE")
        raise InternalError.unexpected("insert-or-ignore is not supported", dialect=dialect)

    def insert_ignore_many(
        self,
        table: Table,
        records: list[dict[str, Any]],
        conflict_columns: Sequence[str],
    ) -> int:
        """Bulk insert, skipping rows whose conflict columns already exist.

        Returns the number of records submitted, not the number that were new.
        """
        if not records:
            return 0
        self.conn.execute(self._insert_ignore(table, conflict_columns), records)
        return len(records)

    def insert_from_select(self, table: Table, columns: Sequence[str], query: Select[Any]) -> int:
        """Store-side ``INSERT ... SELECT``; rows never pass through the client."""
        result = self.conn.execute(table.insert().from_select(list(columns), query))
        return int(result.rowcount)

    def update_where(
        self,
        table: Table,
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> int:
        """
        Single-statement conditional update.

        Returns:
            Number of rows affected
        """
        result = self.conn.execute(table.update().where(*conditions).values(**values))
        return int(result.rowcount)

    def delete_where(self, table: Table, *conditions: ColumnElement[bool]) -> int:
        """Delete rows matching all conditions, returning count affected."""
        result = self.conn.execute(table.delete().where(*conditions))
        return int(result.rowcount)

    def count(self, table: Table, *conditions: ColumnElement[bool]) -> int:
        query = select(func.count()).select_from(table).where(*conditions)
        return int(self.conn.execute(query).scalar_one())

    def count_split(
        self,
        table: Table,
        subset: ColumnElement[bool],
        *conditions: ColumnElement[bool],
    ) -> tuple[int, int]:
        """Rows matching ``conditions`` and how many of them also match ``subset``.

        Both counts come from one statement, so they describe the same snapshot.
        """
        matching = func.coalesce(func.sum(case((subset, 1), else_=0)), 0)
        query = select(func.count(), matching).select_from(table).where(*conditions)
        total, in_subset = self.conn.execute(query).one()
        return int(total), int(in_subset)

    def select_column(
        self,
        table: Table,
        column: str,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[Any]:
        """Values of one column for matching rows, optionally ordered and limited."""
        query = select(table.c[column]).where(*conditions).order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        return list(self.conn.execute(query).scalars())

    def select_rows(
        self,
        table: Table,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
    ) -> list[dict[str, Any]]:
        query = select(table).where(*conditions).order_by(*order_by)
        return [dict(row._mapping) for row in self.conn.execute(query)]

    def distinct_values(self, table: Table, column: str) -> list[Any]:
        query = select(table.c[column]).distinct().order_by(table.c[column])
        return list(self.conn.execute(query).scalars())

    def commit(self) -> None:
        """Commit the current transaction."""
        self.transaction.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        if self.transaction.is_active:
            self.transaction.rollback()

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()
