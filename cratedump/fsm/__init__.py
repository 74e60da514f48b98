"""
fsm - Trade Session State Machine
=================================

Question this layer answers:
"Where is this trade, and when does it end?"

FSM enforces:
- Valid phase transitions
- One snapshot per session, loaded before any allocation
- At most one confirm, only after both sides are ready
- Exactly one terminal outcome, which releases the session gate

```python
session = TradeSession(partner_id, channel, client, gate, settings)
await session.open()
await session.on_chat("!add 82 5")
await session.on_ready()
```

This is what GUARANTEES a trade ends, and that the next one can start.
"""

from .session import OfferState, TradeSession, TradeSettings
from .state_machine import COMMAND_PHASES, TERMINAL_PHASES, TradePhase, TradeStateMachine

__all__ = [
    "OfferState",
    "TradeSession",
    "TradeSettings",
    "COMMAND_PHASES",
    "TERMINAL_PHASES",
    "TradePhase",
    "TradeStateMachine",
]
