"""
Error Taxonomy
==============

Every failure the bot can surface, as a typed exception.

Terminal errors end the session (and release the gate).
Local errors are reported to the partner and change nothing.
"""

from typing import Optional


class CrateDumpError(Exception):
    """Base class for all bot errors."""


class InventoryUnavailable(CrateDumpError):
    """Own inventory could not be loaded, or was empty. Terminal."""

    def __init__(self, reason: str = "inventory unavailable"):
        super().__init__(reason)
        self.reason = reason


class ConfirmationFailed(CrateDumpError):
    """The final confirm step was refused by the channel. Terminal."""


class GateError(CrateDumpError):
    """The session gate was released when not held, or by the wrong owner."""


class InvalidTransition(CrateDumpError):
    """A trade session was asked to move along an edge it does not have."""


class AuthError(CrateDumpError):
    """Logon failed."""

    def __init__(self, message: str = "", eresult: Optional[int] = None):
        super().__init__(message or f"logon failed (eresult={eresult})")
        self.eresult = eresult


class GuardRequired(AuthError):
    """The account needs a one-time guard code to finish logging on."""


class InvalidCredentials(AuthError):
    """Username or password rejected."""
