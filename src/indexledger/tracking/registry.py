"""Index registry interface and an in-memory implementation."""

from __future__ import annotations

import threading
from typing import Protocol

from indexledger.tracking.models import Index


class IndexRegistry(Protocol):
    """Source of Index descriptors."""

    def get(self, index_id: int) -> Index | None: ...

    def for_item_type(self, item_type: str, enabled_only: bool = True) -> list[Index]: ...


class InMemoryIndexRegistry:
    """Registry holding descriptors in a dict. Thread-safe."""

    def __init__(self, indexes: list[Index] | None = None) -> None:
        self._lock = threading.Lock()
        self._indexes: dict[int, Index] = {}
        for index in indexes or []:
            self.register(index)

    def register(self, index: Index) -> None:
        """Add or replace the descriptor for ``index.id``."""
        with self._lock:
            self._indexes[index.id] = index

    def unregister(self, index_id: int) -> Index | None:
        with self._lock:
            return self._indexes.pop(index_id, None)

    def get(self, index_id: int) -> Index | None:
        with self._lock:
            return self._indexes.get(index_id)

    def for_item_type(self, item_type: str, enabled_only: bool = True) -> list[Index]:
        """Indexes over ``item_type``, ordered by id."""
        with self._lock:
            matches = [
                index
                for index in self._indexes.values()
                if index.item_type == item_type and (index.enabled or not enabled_only)
            ]
        return sorted(matches, key=lambda index: index.id)

    def __len__(self) -> int:
        return len(self._indexes)
