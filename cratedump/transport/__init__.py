"""
transport - Channels and Collaborators
======================================

Question this layer answers:
"How do events and messages move?"

In-memory collaborators for local runs and tests:
- LocalTradeChannel: the trade window (offer, chat, ready, confirm)
- LocalClient: the account connection (logon, presence, friends)
- Outbox: ordered outbound lines, one sender task

In production, swap the Local* classes for objects that talk to the real
service. The method names stay the same.

Transport does NOT:
- Know trade phases
- Choose items
- Decide who may trade
"""

from .channel import ChannelCall, LocalTradeChannel
from .client import LocalClient, LogonResult, PresenceStatus
from .outbox import Outbox

__all__ = [
    "ChannelCall",
    "LocalTradeChannel",
    "LocalClient",
    "LogonResult",
    "PresenceStatus",
    "Outbox",
]
