"""
Crate Allocator
===============

Pure selection logic: which snapshot items answer an ``!add`` request.

This is SELECTION only - no chat, no channel, no session state.

Algorithm:
    1. Keep items carrying the category tag
    2. Keep items whose name carries the series marker ``#<series>``
       as a whole token (``#2`` never matches ``#82`` or ``#23``)
    3. Take the first min(quantity, available) in snapshot order

Identical snapshots always give identical allocations.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Pattern, Tuple

from cratedump.inventory import InventorySnapshot, Item
from cratedump.protocol import AddCommand

DEFAULT_CATEGORY = "Supply Crate"


@dataclass(frozen=True)
class Allocation:
    """Result of one allocation."""
    series: int
    requested: int
    available: int
    chosen: Tuple[Item, ...]

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.available)

    @property
    def is_partial(self) -> bool:
        return self.shortfall > 0


def series_pattern(series: int) -> Pattern[str]:
    """
    Match ``#<series>`` as a delimiter-bounded token, case-insensitive.

    The marker must not be followed by another digit, so series 2 does
    not match "#23". The leading ``#`` keeps "#82" from matching series 2.
    """
    return re.compile(rf"#{series}(?!\d)", re.IGNORECASE)


def filter_category(items: Iterable[Item], category: str) -> List[Item]:
    return [item for item in items if item.has_tag(category)]


def filter_series(items: Iterable[Item], series: int) -> List[Item]:
    pattern = series_pattern(series)
    return [item for item in items if pattern.search(item.name)]


def allocate(
    snapshot: InventorySnapshot,
    category: str,
    command: AddCommand,
) -> Allocation:
    """
    Choose items for an add request.

    Args:
        snapshot: Holdings to choose from (never modified)
        category: Internal tag name every chosen item must carry
        command: Parsed ``!add`` request

    Returns:
        Allocation with the chosen items and the number available.
        A shortfall is not an error; the caller reports it and still
        offers what was chosen.
    """
    pool = filter_series(filter_category(snapshot, category), command.series)
    count = min(command.quantity, len(pool))

    return Allocation(
        series=command.series,
        requested=command.quantity,
        available=len(pool),
        chosen=tuple(pool[:count]),
    )
