"""
Shared fixtures for the trade bot tests.
"""

import sys
from pathlib import Path

import pytest

# Allow running the tests from a checkout without installing
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cratedump.fsm import TradeSettings  # noqa: E402
from cratedump.inventory import InventorySnapshot, Item  # noqa: E402

PARTNER = "76561198000000001"
OTHER_PARTNER = "76561198000000002"


def crate(asset_id: str, series: int, category: str = "Supply Crate") -> dict:
    """A raw inventory entry for one crate."""
    return {
        "id": asset_id,
        "name": f"Mann Co. Supply Crate Series #{series}",
        "tags": [{"internal_name": category}, {"internal_name": "Unique"}],
    }


def hat(asset_id: str) -> dict:
    return {"id": asset_id, "name": "Team Captain", "tags": [{"internal_name": "Cosmetic"}]}


def snapshot_of(entries) -> InventorySnapshot:
    return InventorySnapshot(items=tuple(Item.from_dict(e) for e in entries))


@pytest.fixture
def inventory():
    """Three #82 crates, one #83, one #2, one #23, and a hat."""
    return [
        crate("101", 82),
        crate("102", 82),
        crate("103", 82),
        crate("104", 83),
        crate("105", 2),
        crate("106", 23),
        hat("200"),
    ]


@pytest.fixture
def settings():
    """Short confirm delay so scenarios finish quickly."""
    return TradeSettings(confirm_delay=0.01)
