"""Item resolver interface and the changed-item loading helper.

The tracker never loads items. Orchestrators combine it with a resolver via
load_changed_items(), which also forgets ids the resolver no longer knows.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from indexledger.config.constants import UNLIMITED

if TYPE_CHECKING:
    from indexledger.tracking.models import Index, ItemId
    from indexledger.tracking.tracker import IndexTracker

logger = structlog.get_logger()


class ItemResolver(Protocol):
    """Maps item ids to item payloads. Missing ids are gone for good."""

    def load_items(self, ids: Sequence[ItemId]) -> Mapping[ItemId, Any]: ...


def load_changed_items(
    tracker: IndexTracker,
    resolver: ItemResolver,
    index: Index,
    limit: int = UNLIMITED,
) -> dict[ItemId, Any]:
    """Load the next batch of dirty items for ``index``, oldest change first.

    Ids the resolver does not return are removed from tracking for this index.
    """
    ids = tracker.get_changed_items(index, limit)
    if not ids:
        return {}
    loaded = resolver.load_items(ids)
    missing = [item_id for item_id in ids if item_id not in loaded]
    if missing:
        tracker.track_item_delete(missing, [index])
        logger.info(
            "missing_items_untracked",
            item_type=tracker.item_type,
            index_id=index.id,
            count=len(missing),
        )
    return {item_id: loaded[item_id] for item_id in ids if item_id in loaded}
