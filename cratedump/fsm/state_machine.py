"""
Trade State Machine
===================

Provides termination guarantees through explicit phases.

Phase Diagram:

    ┌──────┐  open()  ┌─────────┐  snapshot  ┌──────────────────┐
    │ IDLE │ ───────► │ OPENING │ ─────────► │ INVENTORY_LOADED │
    └──────┘          └─────────┘            └──────────────────┘
                           │                          │ immediately
                           │ load failed              ▼
                           │                  ┌─────────────┐
                           │                  │ NEGOTIATING │ ◄──┐
                           │                  └─────────────┘    │
                           │                    │ partner ready  │ partner unready
                           │                    ▼                │
                           │                  ┌──────────────────┐
                           │                  │ AWAITING_CONFIRM │
                           │                  └──────────────────┘
                           │                          │ confirm / ended
                           ▼                          ▼
           ┌──────────┬───────────┬───────────┬───────┐
           │ COMPLETE │ CANCELLED │ TIMED_OUT │ ERROR │
           └──────────┴───────────┴───────────┴───────┘
                           TERMINAL PHASES
                        (cannot transition out)

TERMINATION GUARANTEE:
- Terminal phases have NO outgoing transitions
- Every live phase can reach CANCELLED, TIMED_OUT and ERROR
- The channel always ends a trade eventually (its own idle window)
- Therefore: every session reaches exactly one terminal phase
"""

from enum import Enum, auto
from typing import List, Tuple

from cratedump.errors import InvalidTransition


class TradePhase(Enum):
    """The finite set of phases."""
    IDLE = auto()              # Constructed, nothing opened yet
    OPENING = auto()           # Channel opening, inventory loading
    INVENTORY_LOADED = auto()  # Snapshot captured
    NEGOTIATING = auto()       # Accepting chat commands
    AWAITING_CONFIRM = auto()  # Both sides ready, confirm scheduled
    COMPLETE = auto()          # Terminal: items exchanged
    CANCELLED = auto()         # Terminal: partner or system cancelled
    TIMED_OUT = auto()         # Terminal: channel idle window expired
    ERROR = auto()             # Terminal: inventory or confirm failure


TERMINAL_PHASES = frozenset({
    TradePhase.COMPLETE,
    TradePhase.CANCELLED,
    TradePhase.TIMED_OUT,
    TradePhase.ERROR,
})

# Phases in which partner chat commands are acted upon
COMMAND_PHASES = frozenset({TradePhase.NEGOTIATING, TradePhase.AWAITING_CONFIRM})

_ENDINGS = {TradePhase.CANCELLED, TradePhase.TIMED_OUT, TradePhase.ERROR}


class TradeStateMachine:
    """
    Phase tracker with an explicit transition table.

    Every move goes through ``transition``; an edge that is not in the
    table raises InvalidTransition instead of silently corrupting state.
    """

    TRANSITIONS = {
        TradePhase.IDLE: {TradePhase.OPENING} | _ENDINGS,
        TradePhase.OPENING: {TradePhase.INVENTORY_LOADED} | _ENDINGS,
        TradePhase.INVENTORY_LOADED: {TradePhase.NEGOTIATING} | _ENDINGS,
        TradePhase.NEGOTIATING: {TradePhase.AWAITING_CONFIRM, TradePhase.COMPLETE} | _ENDINGS,
        TradePhase.AWAITING_CONFIRM: {TradePhase.NEGOTIATING, TradePhase.COMPLETE} | _ENDINGS,
        TradePhase.COMPLETE: set(),   # Terminal - NO outgoing
        TradePhase.CANCELLED: set(),  # Terminal - NO outgoing
        TradePhase.TIMED_OUT: set(),  # Terminal - NO outgoing
        TradePhase.ERROR: set(),      # Terminal - NO outgoing
    }

    def __init__(self):
        self.phase = TradePhase.IDLE
        self.history: List[Tuple[TradePhase, TradePhase]] = []

    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def can_transition(self, to_phase: TradePhase) -> bool:
        return to_phase in self.TRANSITIONS[self.phase]

    def transition(self, to_phase: TradePhase) -> None:
        """
        Move to ``to_phase``.

        Raises:
            InvalidTransition: The edge is not in the table
        """
        if not self.can_transition(to_phase):
            raise InvalidTransition(f"{self.phase.name} -> {to_phase.name}")
        self.history.append((self.phase, to_phase))
        self.phase = to_phase
