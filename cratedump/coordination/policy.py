"""
Trade Policy
============

Explicit rules for who may trade with us, and which partner a session
may start for.

This is NOT the state machine (that tracks where a trade is).
This IS the yes/no answer the handlers ask before acting.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .gate import SessionGate


class PolicyViolation(Enum):
    """Types of policy violations."""
    SESSION_BUSY = auto()      # Another partner holds the gate
    WRONG_PARTNER = auto()     # Event for a session we are not running
    NO_ACTIVE_SESSION = auto() # Trade event with nothing open


@dataclass
class PolicyResult:
    """Result of a policy check."""
    allowed: bool
    violation: Optional[PolicyViolation] = None
    reason: str = ""


class ProposalPolicy:
    """
    Decides incoming trade proposals against the session gate.

    Rules:
    ------
    1. A free gate accepts the proposer and is taken on their behalf
    2. A held gate declines; the running session is untouched
    """

    def __init__(self, gate: SessionGate):
        self.gate = gate

    def evaluate(self, partner_id: str) -> PolicyResult:
        """Accept or decline a proposal. Acquires the gate on accept."""
        if self.gate.try_acquire(partner_id):
            return PolicyResult(allowed=True)

        return PolicyResult(
            allowed=False,
            violation=PolicyViolation.SESSION_BUSY,
            reason=f"Already trading with {self.gate.holder}",
        )

    def validate_session_start(self, partner_id: str) -> PolicyResult:
        """A session may only start for the partner we accepted."""
        if not self.gate.held:
            return PolicyResult(
                allowed=False,
                violation=PolicyViolation.NO_ACTIVE_SESSION,
                reason="No accepted proposal",
            )
        if self.gate.holder != partner_id:
            return PolicyResult(
                allowed=False,
                violation=PolicyViolation.WRONG_PARTNER,
                reason=f"Expected {self.gate.holder}, got {partner_id}",
            )
        return PolicyResult(allowed=True)
