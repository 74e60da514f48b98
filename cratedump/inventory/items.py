"""
Items
=====

One holdable item, as captured from an inventory listing.

The raw listing shape is the one the trade channel hands us:

    {"id": "1234", "name": "Mann Co. Supply Crate Series #82",
     "tags": [{"internal_name": "Supply Crate", ...}, ...]}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Item:
    """
    Immutable item record.

    ``tags`` holds the internal tag names in listing order; category
    membership is a test over the whole tuple, not a single field.
    """
    asset_id: str
    name: str
    tags: Tuple[str, ...] = field(default_factory=tuple)
    owner: str = ""
    appid: int = 440
    contextid: int = 2

    def has_tag(self, internal_name: str) -> bool:
        return internal_name in self.tags

    @classmethod
    def from_dict(cls, data: Dict[str, Any], owner: str = "") -> "Item":
        """Build an item from a raw listing entry."""
        tags = []
        for tag in data.get("tags", []):
            # Listings carry tag objects; replays may carry plain names
            if isinstance(tag, dict):
                tags.append(tag.get("internal_name", ""))
            else:
                tags.append(str(tag))
        return cls(
            asset_id=str(data.get("id", data.get("asset_id", ""))),
            name=data.get("name", ""),
            tags=tuple(tags),
            owner=str(data.get("owner", owner)),
            appid=int(data.get("appid", 440)),
            contextid=int(data.get("contextid", 2)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.asset_id,
            "name": self.name,
            "tags": [{"internal_name": t} for t in self.tags],
            "owner": self.owner,
            "appid": self.appid,
            "contextid": self.contextid,
        }
