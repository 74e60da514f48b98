"""
CrateDump Trade Bot
===================

Root package for the layered trade bot.

A single bot identity accepts one trade at a time, reads ``!add`` commands
from the partner, and places matching crates from its own inventory into
the offer.

Layers (leaves first):

    protocol      "What format do we speak?"
    inventory     "What do we actually hold?"
    allocation    "Which items answer this request?"
    fsm           "Where is this trade, and when does it end?"
    coordination  "Who is allowed to trade with us right now?"
    transport     "How do events and messages move?"
    runtime       "How does this thing run as software?"
"""

__version__ = "0.1.0"
__all__ = [
    "protocol",
    "inventory",
    "allocation",
    "fsm",
    "coordination",
    "transport",
    "runtime",
]
