"""
Trade Chat Commands
===================

Turns free-form partner chat into a typed intent.

Only one command exists:

    !add <series> <amount>

Anything else is ``Unrecognized`` and the caller answers with the fixed
usage line. No guessing, no partial matches.

Example:
    cmd = parse_command("!add 82 5")
    assert cmd == AddCommand(series=82, quantity=5)
"""

import re
from dataclasses import dataclass, field
from typing import Literal, Union


ADD_PATTERN = re.compile(r"^\s*!add\s+(\d+)\s+(\d+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class AddCommand:
    """
    Partner asks for ``quantity`` crates of ``series``.

    Quantity 0 is valid; it simply allocates nothing.
    """
    type: Literal["add"] = field(default="add", init=False)
    series: int
    quantity: int

    def __post_init__(self):
        if self.series < 0:
            raise ValueError(f"Series must be non-negative, got {self.series}")
        if self.quantity < 0:
            raise ValueError(f"Quantity must be non-negative, got {self.quantity}")

    @property
    def marker(self) -> str:
        """The token searched for in item names, e.g. ``#82``."""
        return f"#{self.series}"


@dataclass(frozen=True)
class Unrecognized:
    """Chat text that is not a command."""
    type: Literal["unrecognized"] = field(default="unrecognized", init=False)
    text: str


TradeCommand = Union[AddCommand, Unrecognized]


def parse_command(text: str) -> TradeCommand:
    """
    Parse one line of trade chat.

    Args:
        text: Raw message from the partner

    Returns:
        AddCommand when the text is exactly ``!add <series> <amount>``
        (case-insensitive, surrounding whitespace allowed), else Unrecognized.
    """
    match = ADD_PATTERN.match(text or "")
    if match is None:
        return Unrecognized(text=text or "")
    return AddCommand(series=int(match.group(1)), quantity=int(match.group(2)))
