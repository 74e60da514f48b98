"""
protocol - Structured Communication
===================================

Question this layer answers:
"What format do we speak?"

Inbound:
- Typed events for everything the client and trade channel report
- ``parse_command`` for the one chat command we understand

Outbound:
- Every fixed line the bot says, in ``messages``

```python
cmd = parse_command("!add 82 5")    # AddCommand(series=82, quantity=5)
cmd = parse_command("gimme crates")  # Unrecognized
```

This layer does NOT:
- Decide which items to offer (that's allocation)
- Track session state (that's fsm)
"""

from . import messages
from .commands import AddCommand, Unrecognized, TradeCommand, parse_command
from .events import (
    AcceptExpired,
    BotEvent,
    ConfirmDue,
    FriendMessage,
    FriendRelationship,
    OfferChanged,
    PartnerReady,
    PartnerUnready,
    Relationship,
    SessionStarted,
    TradeChat,
    TradeEnded,
    TradeProposed,
    TradeResult,
    is_trade_event,
    parse_event,
    to_dict,
)

__all__ = [
    "messages",
    "AddCommand",
    "Unrecognized",
    "TradeCommand",
    "parse_command",
    "AcceptExpired",
    "BotEvent",
    "ConfirmDue",
    "FriendMessage",
    "FriendRelationship",
    "OfferChanged",
    "PartnerReady",
    "PartnerUnready",
    "Relationship",
    "SessionStarted",
    "TradeChat",
    "TradeEnded",
    "TradeProposed",
    "TradeResult",
    "is_trade_event",
    "parse_event",
    "to_dict",
]
