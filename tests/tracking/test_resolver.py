"""Tests for load_changed_items()."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from indexledger.tracking import (
    Index,
    IndexStatus,
    LedgerTracker,
    UntrackedTracker,
    load_changed_items,
)

from .conftest import FakeClock


class DictResolver:
    """Resolver over a dict of payloads; records what it was asked for."""

    def __init__(self, items: dict[int, Any]) -> None:
        self.items = items
        self.requests: list[list[int]] = []

    def load_items(self, ids: Sequence[int]) -> Mapping[int, Any]:
        self.requests.append(list(ids))
        return {i: self.items[i] for i in ids if i in self.items}


class TestLoadChangedItems:
    """Changed-item loading with pruning of vanished items."""

    def test_returns_payloads_in_changed_order(
        self, tracker: LedgerTracker, index_a: Index, clock: FakeClock
    ) -> None:
        tracker.track_item_insert([3], [index_a])
        clock.advance(1)
        tracker.track_item_insert([1], [index_a])
        resolver = DictResolver({1: "one", 3: "three"})

        loaded = load_changed_items(tracker, resolver, index_a)

        assert list(loaded.items()) == [(3, "three"), (1, "one")]

    def test_respects_limit(self, tracker: LedgerTracker, index_a: Index) -> None:
        tracker.start_tracking([index_a])
        resolver = DictResolver({1: "a", 2: "b", 3: "c"})

        loaded = load_changed_items(tracker, resolver, index_a, limit=2)

        assert list(loaded) == [1, 2]
        assert resolver.requests == [[1, 2]]

    def test_untracks_missing_items(self, tracker: LedgerTracker, index_a: Index) -> None:
        tracker.start_tracking([index_a])
        resolver = DictResolver({1: "a", 3: "c"})

        loaded = load_changed_items(tracker, resolver, index_a)

        assert list(loaded) == [1, 3]
        assert tracker.get_index_status(index_a) == IndexStatus(0, 2)

    def test_nothing_changed_skips_resolver(self, tracker: LedgerTracker, index_a: Index) -> None:
        resolver = DictResolver({})

        assert load_changed_items(tracker, resolver, index_a) == {}
        assert resolver.requests == []

    def test_untracked_tracker(self, index_a: Index) -> None:
        resolver = DictResolver({1: "a"})

        assert load_changed_items(UntrackedTracker("node"), resolver, index_a) == {}
