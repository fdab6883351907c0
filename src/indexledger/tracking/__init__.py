"""Tracking ledger: which items each index still has to (re)index."""

from indexledger.tracking.ledger import Ledger, build_ledger_table, ledger_table_name
from indexledger.tracking.models import (
    ALL,
    AllItems,
    Index,
    IndexStatus,
    ItemId,
    TrackingEntry,
)
from indexledger.tracking.registry import IndexRegistry, InMemoryIndexRegistry
from indexledger.tracking.resolver import ItemResolver, load_changed_items
from indexledger.tracking.sources import IterableItemSource, TableItemSource
from indexledger.tracking.store import BulkWriter, Database, chunked
from indexledger.tracking.tracker import (
    IndexTracker,
    LedgerTracker,
    UntrackedTracker,
    create_tracker,
    system_clock,
)

__all__ = [
    "ALL",
    "AllItems",
    "BulkWriter",
    "Database",
    "Index",
    "IndexRegistry",
    "IndexStatus",
    "IndexTracker",
    "InMemoryIndexRegistry",
    "ItemId",
    "ItemResolver",
    "IterableItemSource",
    "Ledger",
    "LedgerTracker",
    "TableItemSource",
    "TrackingEntry",
    "UntrackedTracker",
    "build_ledger_table",
    "chunked",
    "create_tracker",
    "ledger_table_name",
    "load_changed_items",
    "system_clock",
]
