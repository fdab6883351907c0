"""Shared fixtures for tracking tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import Column, Integer, MetaData, Table

from indexledger.tracking import (
    Database,
    Index,
    IterableItemSource,
    Ledger,
    LedgerTracker,
)


class FakeClock:
    """Deterministic clock: returns ``now`` and moves only when told to."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """SQLite database file in a temp directory."""
    database = Database.from_path(tmp_path / "ledger.db")
    yield database
    database.dispose()


@pytest.fixture
def ledger(db: Database) -> Ledger:
    """Created ledger for the 'node' item type."""
    node_ledger = Ledger.for_item_type(db, "node")
    node_ledger.create()
    return node_ledger


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def known_ids() -> list[int]:
    """Item universe for the iterable source; tests may mutate it."""
    return [1, 2, 3]


@pytest.fixture
def tracker(ledger: Ledger, clock: FakeClock, known_ids: list[int]) -> LedgerTracker:
    return LedgerTracker(
        "node",
        ledger,
        IterableItemSource(lambda: iter(known_ids)),
        clock=clock,
    )


@pytest.fixture
def index_a() -> Index:
    return Index(id=1, item_type="node", name="A")


@pytest.fixture
def index_b() -> Index:
    return Index(id=2, item_type="node", name="B")


@pytest.fixture
def user_index() -> Index:
    """Index over a different item type."""
    return Index(id=9, item_type="user", name="Users")


@pytest.fixture
def node_items(db: Database) -> Table:
    """Item table living next to the ledger, holding ids 10..14."""
    table = Table("nodes", MetaData(), Column("id", Integer, primary_key=True))
    db.create_table(table)
    with db.bulk_writer() as writer:
        writer.insert_ignore_many(table, [{"id": i} for i in range(10, 15)], ["id"])
    return table
