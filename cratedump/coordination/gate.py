"""
Session Gate
============

The one shared mutable resource in the bot: ownership of "the" trade.

Acquired when a proposal is accepted, released when that session reaches
a terminal phase. Never a bare boolean checked ad hoc.
"""

import logging
from typing import Optional

from cratedump.errors import GateError

logger = logging.getLogger(__name__)

ANONYMOUS = "<anonymous>"


class SessionGate:
    """
    At-most-one-session exclusivity token.

    ``try_acquire`` never blocks: a held gate simply says no.
    ``release`` must be called exactly once per successful acquire.
    """

    def __init__(self):
        self._holder: Optional[str] = None

    @property
    def held(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[str]:
        return self._holder

    def try_acquire(self, owner: Optional[str] = None) -> bool:
        """Take the gate for ``owner``. False if someone already has it."""
        if self._holder is not None:
            return False
        self._holder = owner or ANONYMOUS
        logger.debug("Session gate acquired by %s", self._holder)
        return True

    def release(self, owner: Optional[str] = None) -> None:
        """
        Give the gate back.

        Raises:
            GateError: The gate is not held, or ``owner`` is given and
                is not the current holder.
        """
        if self._holder is None:
            raise GateError("session gate released while not held")
        if owner is not None and owner != self._holder:
            raise GateError(f"session gate held by {self._holder}, not {owner}")
        logger.debug("Session gate released by %s", self._holder)
        self._holder = None
