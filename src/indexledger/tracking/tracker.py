"""Index tracker: per (item, index) bookkeeping of what needs (re)indexing.

A tracker manages one item type and comes in two variants:

- LedgerTracker: backed by that item type's ledger table.
- UntrackedTracker: the item type opts out of tracking; every operation is a
  no-op that succeeds.

Every operation that takes indexes validates all of them against the
tracker's item type before touching the store, so a mismatch never leaves a
partial mutation behind.

Write semantics:
- Inserts are insert-or-ignore on (item_id, index_id) and run in chunks, each
  committed on its own. A failed call leaves a prefix of the ids tracked;
  retrying with the same ids is safe.
- Changes and indexed/clean marks are single conditional UPDATE statements
  per chunk, never read-then-write.
- start_tracking() clears an index's entries before seeding it. With a
  TableItemSource both happen in one transaction.

The ``changed`` marker comes from an injected clock so ordering is testable.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import literal, or_, select

from indexledger.config.constants import CLEAN, DEFAULT_CHUNK_SIZE, UNLIMITED
from indexledger.core.errors import TrackingError
from indexledger.tracking.models import (
    AllItems,
    Index,
    IndexStatus,
    ItemId,
    ItemSelection,
    TrackingEntry,
)
from indexledger.tracking.sources import IterableItemSource, TableItemSource
from indexledger.tracking.store import chunked

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Table

    from indexledger.config.models import TrackingConfig
    from indexledger.tracking.ledger import Ledger
    from indexledger.tracking.sources import ItemSource

logger = structlog.get_logger()

Clock = Callable[[], int]

LEDGER_COLUMNS = ("item_id", "index_id", "changed")
KEY_COLUMNS = ("item_id", "index_id")


def system_clock() -> int:
    """Current Unix time in whole seconds, never the clean marker."""
    return max(int(time.time()), 1)


class IndexTracker(ABC):
    """Tracker contract shared by both variants."""

    item_type: str

    @property
    @abstractmethod
    def tracked(self) -> bool:
        """Whether operations reach a ledger."""
        ...

    @abstractmethod
    def start_tracking(self, indexes: Iterable[Index]) -> None:
        """Clear each index and seed every known item as dirty."""
        ...

    @abstractmethod
    def stop_tracking(self, indexes: Iterable[Index]) -> None:
        """Drop every entry of the indexes."""
        ...

    @abstractmethod
    def track_item_insert(self, item_ids: Sequence[ItemId], indexes: Iterable[Index]) -> None:
        """Track new items as dirty."""
        ...

    @abstractmethod
    def track_item_change(
        self,
        item_ids: ItemSelection,
        indexes: Iterable[Index],
        dequeue: bool = False,
    ) -> None:
        """Mark tracked items dirty."""
        ...

    @abstractmethod
    def track_item_indexed(self, item_ids: Sequence[ItemId], index: Index) -> None:
        """Mark items clean for one index."""
        ...

    @abstractmethod
    def track_item_delete(self, item_ids: Sequence[ItemId], indexes: Iterable[Index]) -> None:
        """Stop tracking items."""
        ...

    @abstractmethod
    def get_changed_items(self, index: Index, limit: int = UNLIMITED) -> list[ItemId]:
        """Dirty item ids, oldest change first."""
        ...

    @abstractmethod
    def get_index_status(self, index: Index) -> IndexStatus:
        """Indexed and total entry counts."""
        ...


class UntrackedTracker(IndexTracker):
    """Tracker for an item type without a ledger. Nothing is stored or checked."""

    def __init__(self, item_type: str) -> None:
        self.item_type = item_type

    @property
    def tracked(self) -> bool:
        return False

    def start_tracking(self, indexes: Iterable[Index]) -> None:
        return None

    def stop_tracking(self, indexes: Iterable[Index]) -> None:
        return None

    def track_item_insert(self, item_ids: Sequence[ItemId], indexes: Iterable[Index]) -> None:
        return None

    def track_item_change(
        self,
        item_ids: ItemSelection,
        indexes: Iterable[Index],
        dequeue: bool = False,
    ) -> None:
        return None

    def track_item_indexed(self, item_ids: Sequence[ItemId], index: Index) -> None:
        return None

    def track_item_delete(self, item_ids: Sequence[ItemId], indexes: Iterable[Index]) -> None:
        return None

    def get_changed_items(self, index: Index, limit: int = UNLIMITED) -> list[ItemId]:
        return []

    def get_index_status(self, index: Index) -> IndexStatus:
        return IndexStatus(indexed=0, total=0)


class LedgerTracker(IndexTracker):
    """Tracker backed by a ledger table."""

    def __init__(
        self,
        item_type: str,
        ledger: Ledger,
        source: ItemSource | None = None,
        *,
        clock: Clock = system_clock,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        seed_page_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1 or seed_page_size < 1:
            raise ValueError("chunk_size and seed_page_size must be >= 1")
        self.item_type = item_type
        self.ledger = ledger
        self.source = source
        self._clock = clock
        self._chunk_size = chunk_size
        self._seed_page_size = seed_page_size

    @property
    def tracked(self) -> bool:
        return True

    @property
    def table(self) -> Table:
        return self.ledger.table

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_indexes(self, indexes: Iterable[Index]) -> list[Index]:
        """Return the indexes as a list, or raise on the first foreign one."""
        checked = list(indexes)
        for index in checked:
            if index.item_type != self.item_type:
                raise TrackingError.index_type_mismatch(index.id, index.item_type, self.item_type)
        return checked

    def _now(self) -> int:
        now = int(self._clock())
        if now == CLEAN:
            raise ValueError("Clock returned the clean marker (0); change times must be non-zero")
        return now

    def _index_ids(self, indexes: list[Index]) -> list[int]:
        # Sets of Index compare by value; two descriptors may still share an id
        return sorted({index.id for index in indexes})

    # =========================================================================
    # Start / stop
    # =========================================================================

    def start_tracking(self, indexes: Iterable[Index]) -> None:
        """Clear and reseed every given index with all known items, marked dirty."""
        checked = self._check_indexes(indexes)
        for index_id in self._index_ids(checked):
            if self.source is None:
                self._clear(index_id)
                logger.warning(
                    "tracking_started_without_source",
                    item_type=self.item_type,
                    index_id=index_id,
                )
                continue
            if isinstance(self.source, TableItemSource):
                seeded = self._seed_from_select(index_id, self.source)
            else:
                seeded = self._seed_from_iterable(index_id, self.source)
            logger.info(
                "tracking_started",
                item_type=self.item_type,
                index_id=index_id,
                items=seeded,
            )

    def _clear(self, index_id: int) -> int:
        with self.ledger.db.bulk_writer("start_tracking") as writer:
            return writer.delete_where(self.table, self.table.c.index_id == index_id)

    def _seed_from_select(self, index_id: int, source: TableItemSource) -> int:
        known_ids = source.id_select().subquery()
        (id_column,) = known_ids.c
        query = select(id_column, literal(index_id), literal(self._now()))
        with self.ledger.db.bulk_writer("start_tracking") as writer:
            writer.delete_where(self.table, self.table.c.index_id == index_id)
            return writer.insert_from_select(self.table, LEDGER_COLUMNS, query)

    def _seed_from_iterable(self, index_id: int, source: IterableItemSource) -> int:
        self._clear(index_id)
        changed = self._now()
        seeded = 0
        for page in source.iter_pages(self._seed_page_size):
            for chunk in chunked(page, self._chunk_size):
                records = [
                    {"item_id": item_id, "index_id": index_id, "changed": changed}
                    for item_id in chunk
                ]
                with self.ledger.db.bulk_writer("start_tracking") as writer:
                    seeded += writer.insert_ignore_many(self.table, records, KEY_COLUMNS)
        return seeded

    def stop_tracking(self, indexes: Iterable[Index]) -> None:
        """Remove every entry of the given indexes."""
        checked = self._check_indexes(indexes)
        index_ids = self._index_ids(checked)
        if not index_ids:
            return
        with self.ledger.db.bulk_writer("stop_tracking") as writer:
            removed = writer.delete_where(self.table, self.table.c.index_id.in_(index_ids))
        logger.info(
            "tracking_stopped",
            item_type=self.item_type,
            index_ids=index_ids,
            entries=removed,
        )

    # =========================================================================
    # Item mutations
    # =========================================================================

    def track_item_insert(self, item_ids: Sequence[ItemId], indexes: Iterable[Index]) -> None:
        """Track new items as dirty for the given indexes.

        Each chunk of ids commits on its own. Re-inserting a tracked pair is a
        no-op, so a failed call can be retried with the same ids.
        """
        checked = self._check_indexes(indexes)
        index_ids = self._index_ids(checked)
        if not index_ids or not item_ids:
            return
        changed = self._now()
        submitted = 0
        for chunk in chunked(item_ids, self._chunk_size):
            records = [
                {"item_id": item_id, "index_id": index_id, "changed": changed}
                for index_id in index_ids
                for item_id in chunk
            ]
            with self.ledger.db.bulk_writer("track_item_insert") as writer:
                submitted += writer.insert_ignore_many(self.table, records, KEY_COLUMNS)
        logger.debug(
            "items_inserted",
            item_type=self.item_type,
            index_ids=index_ids,
            items=len(item_ids),
            rows=submitted,
        )

    def track_item_change(
        self,
        item_ids: ItemSelection,
        indexes: Iterable[Index],
        dequeue: bool = False,
    ) -> None:
        """Mark tracked items dirty.

        Clean entries always become dirty. Entries that are already dirty are
        only refreshed with ``dequeue``, and only to a later change time.
        Untracked pairs are left alone.
        """
        checked = self._check_indexes(indexes)
        index_ids = self._index_ids(checked)
        if not index_ids:
            return
        now = self._now()
        changed = self.table.c.changed
        eligible: ColumnElement[bool] = (
            or_(changed == CLEAN, changed < now) if dequeue else changed == CLEAN
        )
        conditions = [self.table.c.index_id.in_(index_ids), eligible]

        updated = 0
        if isinstance(item_ids, AllItems):
            with self.ledger.db.bulk_writer("track_item_change") as writer:
                updated = writer.update_where(self.table, {"changed": now}, *conditions)
        else:
            for chunk in chunked(item_ids, self._chunk_size):
                with self.ledger.db.bulk_writer("track_item_change") as writer:
                    updated += writer.update_where(
                        self.table,
                        {"changed": now},
                        self.table.c.item_id.in_(chunk),
                        *conditions,
                    )
        logger.debug(
            "items_changed",
            item_type=self.item_type,
            index_ids=index_ids,
            all_items=isinstance(item_ids, AllItems),
            dequeue=dequeue,
            rows=updated,
        )

    def track_item_indexed(self, item_ids: Sequence[ItemId], index: Index) -> None:
        """Mark items clean for one index after a successful index write."""
        (index,) = self._check_indexes([index])
        cleaned = 0
        for chunk in chunked(item_ids, self._chunk_size):
            with self.ledger.db.bulk_writer("track_item_indexed") as writer:
                cleaned += writer.update_where(
                    self.table,
                    {"changed": CLEAN},
                    self.table.c.index_id == index.id,
                    self.table.c.item_id.in_(chunk),
                )
        logger.debug(
            "items_indexed",
            item_type=self.item_type,
            index_id=index.id,
            items=len(item_ids),
            rows=cleaned,
        )

    def track_item_delete(self, item_ids: Sequence[ItemId], indexes: Iterable[Index]) -> None:
        """Stop tracking the items for the given indexes."""
        checked = self._check_indexes(indexes)
        index_ids = self._index_ids(checked)
        if not index_ids:
            return
        removed = 0
        for chunk in chunked(item_ids, self._chunk_size):
            with self.ledger.db.bulk_writer("track_item_delete") as writer:
                removed += writer.delete_where(
                    self.table,
                    self.table.c.index_id.in_(index_ids),
                    self.table.c.item_id.in_(chunk),
                )
        logger.debug(
            "items_deleted",
            item_type=self.item_type,
            index_ids=index_ids,
            items=len(item_ids),
            rows=removed,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_changed_items(self, index: Index, limit: int = UNLIMITED) -> list[ItemId]:
        """Ids of dirty entries, oldest change first.

        A negative limit means no limit; a zero limit returns nothing without
        querying the store.
        """
        (index,) = self._check_indexes([index])
        if limit == 0:
            return []
        changed = self.table.c.changed
        with self.ledger.db.reader("get_changed_items") as reader:
            return reader.select_column(
                self.table,
                "item_id",
                self.table.c.index_id == index.id,
                changed != CLEAN,
                order_by=(changed.asc(), self.table.c.item_id.asc()),
                limit=limit if limit > 0 else None,
            )

    def get_index_status(self, index: Index) -> IndexStatus:
        """Count of clean entries and of all entries for the index."""
        (index,) = self._check_indexes([index])
        in_index = self.table.c.index_id == index.id
        with self.ledger.db.reader("get_index_status") as reader:
            total, indexed = reader.count_split(
                self.table, self.table.c.changed == CLEAN, in_index
            )
        return IndexStatus(indexed=indexed, total=total)

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_entries(self, index: Index) -> list[TrackingEntry]:
        """All ledger rows of one index, ordered by item id."""
        (index,) = self._check_indexes([index])
        with self.ledger.db.reader("get_entries") as reader:
            rows = reader.select_rows(
                self.table,
                self.table.c.index_id == index.id,
                order_by=(self.table.c.item_id.asc(),),
            )
        return [TrackingEntry.model_validate(row) for row in rows]

    def get_tracked_indexes(self) -> list[int]:
        """Ids of indexes with at least one entry in this ledger."""
        with self.ledger.db.reader("get_tracked_indexes") as reader:
            return reader.distinct_values(self.table, "index_id")


def create_tracker(
    item_type: str,
    ledger: Ledger | None = None,
    source: ItemSource | None = None,
    *,
    clock: Clock = system_clock,
    config: TrackingConfig | None = None,
    **kwargs: Any,
) -> IndexTracker:
    """Build the tracker variant for an item type.

    Without a ledger the item type is untracked and every call is a no-op.
    """
    if ledger is None:
        return UntrackedTracker(item_type)
    if config is not None:
        kwargs.setdefault("chunk_size", config.chunk_size)
        kwargs.setdefault("seed_page_size", config.seed_page_size)
    return LedgerTracker(item_type, ledger, source, clock=clock, **kwargs)
