"""
Outbound Message Text
=====================

Every fixed line the bot says to a partner lives here, so tests can assert
on the exact wording.
"""

GREETING = (
    "I'm a bot that accepts all your unwanted items.  If you would like to "
    "grab a few crates from me, please request a trade."
)

BUSY = "I'm currently trading with someone else."

INVENTORY_FAILED = "Could not load my inventory.  Please try again later."

OPEN_FAILED = "Something went wrong opening the trade.  Please try again later."

UNRECOGNIZED = "Unrecognized command.  Please use !add <series> <amount>"

TIMED_OUT = (
    "The trade timed out. This usually means Steam is having problems. "
    "Please try again later."
)

CONFIRM_FAILED = "I could not confirm the trade.  Please try again later."

# Sent in this order once the session reaches NEGOTIATING.
WELCOME = (
    "If you're adding crates, please put them up now.",
    "Any other items traded to me will be considered a donation.",
    "If you want a crate, request one via the following command: ",
    "!add <series> <amount>",
    'ex: "!add 82 5" will add 5 crates of series #82',
)


def shortfall(available: int, series: int) -> str:
    """Tell the partner how many crates of a series we actually have."""
    return f"I have {available} crates of series {series} available."
