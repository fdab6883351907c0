"""Data model for the tracking ledger.

The ledger table itself is built per item type in ``ledger.py``; the models
here are the values that flow in and out of the tracker.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, TypeAlias

from sqlmodel import SQLModel

ItemId: TypeAlias = int | str


class AllItems(Enum):
    """Sentinel type for "every tracked item"."""

    ALL = "all"


ALL = AllItems.ALL
"""Pass to track_item_change() instead of an id sequence to touch every tracked item."""

ItemSelection: TypeAlias = Sequence[ItemId] | AllItems


@dataclass(frozen=True, slots=True)
class Index:
    """Search index descriptor, as supplied by the index registry.

    Only ``id`` and ``item_type`` matter to the tracker; the rest is carried
    for registries and reporting.
    """

    id: int
    item_type: str
    name: str | None = None
    enabled: bool = True


class IndexStatus(NamedTuple):
    """Indexing progress for one index."""

    indexed: int
    total: int

    @property
    def remaining(self) -> int:
        return self.total - self.indexed


class TrackingEntry(SQLModel):
    """One ledger row (not a table model: ledger tables are per item type)."""

    item_id: ItemId
    index_id: int
    changed: int

    @property
    def dirty(self) -> bool:
        return self.changed != 0
