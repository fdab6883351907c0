"""Ledger table schema, one table per item type.

Columns are ``(item_id, index_id, changed)`` with the primary key on
``(item_id, index_id)`` and a secondary index on ``(index_id, changed)`` so
the oldest-dirty-first query is a range scan.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    BigInteger,
    Column,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
)

from indexledger.config.constants import CLEAN, DEFAULT_TABLE_PREFIX
from indexledger.core.errors import TrackingError

if TYPE_CHECKING:
    from sqlalchemy.types import TypeEngine

    from indexledger.tracking.store import Database

_ITEM_TYPE_RE = re.compile(r"^[a-z][a-z0-9_]*$")

# Item ids are opaque; these are the column types a ledger can key them by
ITEM_ID_TYPES: dict[str, TypeEngine[Any]] = {
    "int": Integer(),
    "str": String(255),
}


def ledger_table_name(item_type: str, prefix: str = DEFAULT_TABLE_PREFIX) -> str:
    if not _ITEM_TYPE_RE.match(item_type):
        raise TrackingError.invalid_item_type(item_type)
    return f"{prefix}{item_type}"


def build_ledger_table(
    item_type: str,
    metadata: MetaData | None = None,
    *,
    item_id_type: str = "int",
    prefix: str = DEFAULT_TABLE_PREFIX,
) -> Table:
    """Build (but do not create) the ledger table for ``item_type``."""
    name = ledger_table_name(item_type, prefix)
    if item_id_type not in ITEM_ID_TYPES:
        raise ValueError(f"item_id_type must be one of {sorted(ITEM_ID_TYPES)}, got {item_id_type}")
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("item_id", ITEM_ID_TYPES[item_id_type], nullable=False),
        Column("index_id", Integer, nullable=False),
        Column("changed", BigInteger, nullable=False, default=CLEAN),
        PrimaryKeyConstraint("item_id", "index_id", name=f"pk_{name}"),
        Index(f"idx_{name}_index_changed", "index_id", "changed"),
    )


@dataclass(frozen=True, slots=True)
class Ledger:
    """Handle on one item type's ledger table in a database."""

    db: Database
    table: Table

    @classmethod
    def for_item_type(
        cls,
        db: Database,
        item_type: str,
        *,
        item_id_type: str = "int",
        prefix: str = DEFAULT_TABLE_PREFIX,
    ) -> Ledger:
        return cls(db, build_ledger_table(item_type, item_id_type=item_id_type, prefix=prefix))

    @classmethod
    def open(
        cls,
        db: Database,
        item_type: str,
        *,
        prefix: str = DEFAULT_TABLE_PREFIX,
    ) -> Ledger | None:
        """Handle on an existing ledger, keyed by the id type it was created with.

        Returns None when the item type has no ledger table.
        """
        ledger = cls.for_item_type(db, item_type, prefix=prefix)
        if not ledger.exists():
            return None
        if isinstance(db.column_types(ledger.name).get("item_id"), String):
            return cls.for_item_type(db, item_type, item_id_type="str", prefix=prefix)
        return ledger

    @property
    def name(self) -> str:
        return self.table.name

    def create(self) -> None:
        """Create the table and its index if they do not exist."""
        self.db.create_table(self.table)

    def drop(self) -> None:
        self.db.drop_table(self.table)

    def exists(self) -> bool:
        return self.db.has_table(self.table)
