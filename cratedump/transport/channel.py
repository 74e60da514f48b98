"""
Local Trade Channel
===================

In-memory stand-in for the negotiation channel collaborator.

A production channel is whatever object talks to the real trade window;
it only needs these coroutines:

    open(partner_id)                   start trading with a partner
    load_inventory(appid, contextid)   raw item dicts, or None
    add_item(item)                     put one of our items up
    chat_msg(text)                     say something in the trade window
    set_ready()                        tick our ready box
    confirm()                          final confirm; raises ConfirmationFailed
    cancel()                           abort the trade

This one records every call so tests and the demo can see exactly what
the bot did, in order.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from cratedump.errors import ConfirmationFailed
from cratedump.inventory import Item

logger = logging.getLogger(__name__)


@dataclass
class ChannelCall:
    """One recorded call, for ordering assertions."""
    method: str
    args: Tuple[Any, ...] = field(default_factory=tuple)


class LocalTradeChannel:
    """
    Recording trade channel.

    Args:
        inventory: Raw item dicts returned by ``load_inventory``.
            None simulates an unreachable inventory.
        fail_confirm: Make ``confirm`` raise ConfirmationFailed.
    """

    def __init__(
        self,
        inventory: Optional[List[Dict[str, Any]]] = None,
        fail_confirm: bool = False,
    ):
        self.inventory = inventory
        self.fail_confirm = fail_confirm
        self.partner_id: Optional[str] = None
        self.calls: List[ChannelCall] = []

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append(ChannelCall(method=method, args=args))

    async def open(self, partner_id: str) -> None:
        self.partner_id = partner_id
        self._record("open", partner_id)

    async def load_inventory(self, appid: int, contextid: int) -> Optional[List[Dict[str, Any]]]:
        self._record("load_inventory", appid, contextid)
        if self.inventory is None:
            return None
        return [dict(entry) for entry in self.inventory]

    async def add_item(self, item: Item) -> None:
        self._record("add_item", item)

    async def chat_msg(self, text: str) -> None:
        self._record("chat_msg", text)

    async def set_ready(self) -> None:
        self._record("set_ready")

    async def confirm(self) -> None:
        self._record("confirm")
        if self.fail_confirm:
            raise ConfirmationFailed("confirm rejected by channel")

    async def cancel(self) -> None:
        self._record("cancel")

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def called(self, method: str) -> List[ChannelCall]:
        return [c for c in self.calls if c.method == method]

    @property
    def chat_log(self) -> List[str]:
        return [c.args[0] for c in self.called("chat_msg")]

    @property
    def added_items(self) -> List[Item]:
        return [c.args[0] for c in self.called("add_item")]

    def clear(self) -> None:
        """Forget recorded calls (for testing)."""
        self.calls.clear()
        self.partner_id = None
