"""Item universe sources used to seed a ledger.

A source enumerates every known identifier of one item type. Seeding uses
whichever form the source offers:

- TableItemSource: the ids live in a table of the same database, so seeding
  is a single store-side ``INSERT ... SELECT``.
- IterableItemSource: the ids come from anywhere else; they are read lazily,
  page by page, and written in chunks.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from indexledger.tracking.store import chunked

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Select

    from indexledger.tracking.models import ItemId


class TableItemSource:
    """Item ids held in a column of a table in the ledger's database."""

    def __init__(self, column: Any, where: ColumnElement[bool] | None = None) -> None:
        self.column = column
        self.where = where

    def id_select(self) -> Select[Any]:
        """Distinct known ids, as a selectable for insert-select."""
        query = select(self.column).distinct()
        if self.where is not None:
            query = query.where(self.where)
        return query


class IterableItemSource:
    """Item ids produced by a callable; the iterable is consumed lazily."""

    def __init__(self, enumerate_ids: Callable[[], Iterable[ItemId]]) -> None:
        self._enumerate_ids = enumerate_ids

    def iter_pages(self, page_size: int) -> Iterator[list[ItemId]]:
        return chunked(self._enumerate_ids(), page_size)


ItemSource = TableItemSource | IterableItemSource
