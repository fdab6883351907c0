"""CLI utilities."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
from sqlalchemy import MetaData, Table
from sqlalchemy.exc import NoSuchTableError

from indexledger.config import IndexLedgerConfig, load_config
from indexledger.core.errors import IndexLedgerError
from indexledger.tracking import (
    Database,
    Index,
    IndexTracker,
    Ledger,
    TableItemSource,
    create_tracker,
)
from indexledger.tracking.store import translate_store_errors


@dataclass
class CliState:
    """Objects shared by every command of one invocation."""

    config: IndexLedgerConfig
    verbose: bool = False
    _db: Database | None = None

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = Database(
                self.config.database.url,
                busy_timeout_ms=self.config.database.busy_timeout_ms,
            )
        return self._db

    def ledger(self, item_type: str, item_id_type: str = "int") -> Ledger:
        return Ledger.for_item_type(
            self.db,
            item_type,
            item_id_type=item_id_type,
            prefix=self.config.tracking.table_prefix,
        )

    def tracker(
        self,
        item_type: str,
        source_table: str | None = None,
        id_column: str = "id",
    ) -> IndexTracker:
        """Tracker for ``item_type``; untracked when its ledger table is missing."""
        ledger = Ledger.open(self.db, item_type, prefix=self.config.tracking.table_prefix)
        if ledger is None:
            return create_tracker(item_type)
        source = None
        if source_table is not None:
            with translate_store_errors("reflect_source_table"):
                try:
                    table = Table(source_table, MetaData(), autoload_with=self.db.engine)
                except NoSuchTableError:
                    raise click.ClickException(f"Table '{source_table}' does not exist") from None
            if id_column not in table.c:
                raise click.ClickException(f"Table '{source_table}' has no column '{id_column}'")
            source = TableItemSource(table.c[id_column])
        return create_tracker(item_type, ledger, source, config=self.config.tracking)


def load_state(config_path: Path | None, db_url: str | None, verbose: bool) -> CliState:
    overrides = {"database": {"url": db_url}} if db_url else {}
    with handle_errors():
        config = load_config(config_path, **overrides)
    return CliState(config=config, verbose=verbose)


def indexes_for(item_type: str, index_ids: tuple[int, ...]) -> list[Index]:
    """Index descriptors for ids given on the command line."""
    return [Index(id=index_id, item_type=item_type) for index_id in index_ids]


@contextmanager
def handle_errors() -> Generator[None, None, None]:
    """Render library errors as click errors (exit code 1, no traceback)."""
    try:
        yield
    except IndexLedgerError as e:
        raise click.ClickException(str(e)) from e
