"""
Inventory Snapshot
==================

A point-in-time, read-only capture of the bot's own holdings.

The snapshot is the AUTHORITATIVE answer to "what can we give away?"
for exactly one session. It is loaded once when the session opens and
dropped when the session ends, whatever the outcome, so the next partner
never sees stale holdings.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Tuple

from cratedump.errors import InventoryUnavailable

from .items import Item

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventorySnapshot:
    """Ordered, immutable sequence of items. Order is listing order."""
    items: Tuple[Item, ...]
    owner: str = ""
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def without(self, asset_ids: Iterable[str]) -> "InventorySnapshot":
        """A copy of this snapshot minus the given assets, order preserved."""
        excluded = set(asset_ids)
        if not excluded:
            return self
        return InventorySnapshot(
            items=tuple(i for i in self.items if i.asset_id not in excluded),
            owner=self.owner,
            captured_at=self.captured_at,
        )


async def load_snapshot(
    source: Any,
    appid: int,
    contextid: int,
    owner: str = "",
) -> InventorySnapshot:
    """
    Load the bot's inventory once and freeze it.

    Args:
        source: Anything with ``async load_inventory(appid, contextid)``
            returning a list of raw item dicts (or None on failure)
        appid: Application id of the inventory
        contextid: Context id within the application
        owner: Identity recorded on every item

    Raises:
        InventoryUnavailable: The source failed, returned nothing, or
            returned an empty inventory. Not retried.
    """
    try:
        raw = await source.load_inventory(appid, contextid)
    except Exception as e:
        raise InventoryUnavailable(f"inventory request failed: {e}") from e

    if not raw:
        raise InventoryUnavailable("inventory empty or unreachable")

    items = tuple(Item.from_dict(entry, owner=owner) for entry in raw)
    logger.debug("Found %d items in my inventory.", len(items))
    return InventorySnapshot(items=items, owner=owner)
