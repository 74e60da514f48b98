"""
Inbound Events
==============

Everything the outside world can tell the bot, as typed events.

Client events arrive from the account connection (proposals, friends,
direct messages). Trade events arrive from the open negotiation channel.
``ConfirmDue`` is internal: the bot posts it to itself when the
compensating delay before confirm has elapsed.

Why typed events?
- One ordered queue can carry all of them
- Dispatch is a type switch, not string sniffing
- Replays and tests use the same dict shape as the wire
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from cratedump.inventory.items import Item


class Relationship(str, Enum):
    """Friend relationship states reported by the client."""
    NONE = "none"
    PENDING_INVITEE = "pending_invitee"
    PENDING_INVITER = "pending_inviter"
    FRIEND = "friend"
    BLOCKED = "blocked"


class TradeResult(str, Enum):
    """Known values of ``TradeEnded.result``."""
    COMPLETE = "complete"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ============================================================
# CLIENT EVENTS
# ============================================================

@dataclass(frozen=True)
class TradeProposed:
    """A user asks to open a trade with us."""
    type: Literal["trade_proposed"] = field(default="trade_proposed", init=False)
    trade_id: str
    partner_id: str


@dataclass(frozen=True)
class SessionStarted:
    """The accepted proposal became a live trade session."""
    type: Literal["session_started"] = field(default="session_started", init=False)
    partner_id: str


@dataclass(frozen=True)
class FriendRelationship:
    """A user's relationship to us changed."""
    type: Literal["friend"] = field(default="friend", init=False)
    partner_id: str
    relationship: Relationship


@dataclass(frozen=True)
class FriendMessage:
    """A direct chat message, outside any trade."""
    type: Literal["friend_msg"] = field(default="friend_msg", init=False)
    partner_id: str
    text: str


# ============================================================
# TRADE EVENTS
# ============================================================

@dataclass(frozen=True)
class TradeChat:
    """Chat typed into the trade window."""
    type: Literal["chat"] = field(default="chat", init=False)
    text: str


@dataclass(frozen=True)
class OfferChanged:
    """An item was added to or removed from the offer."""
    type: Literal["offer_changed"] = field(default="offer_changed", init=False)
    added: bool
    item: Item


@dataclass(frozen=True)
class PartnerReady:
    type: Literal["ready"] = field(default="ready", init=False)


@dataclass(frozen=True)
class PartnerUnready:
    type: Literal["unready"] = field(default="unready", init=False)


@dataclass(frozen=True)
class TradeEnded:
    """The channel closed the trade. ``result`` is kept raw for logging."""
    type: Literal["ended"] = field(default="ended", init=False)
    result: str


@dataclass(frozen=True)
class ConfirmDue:
    """Internal: the compensating delay for ``session_id`` has elapsed."""
    type: Literal["confirm_due"] = field(default="confirm_due", init=False)
    session_id: str
    token: int


@dataclass(frozen=True)
class AcceptExpired:
    """Internal: an accepted proposal never became a session in time."""
    type: Literal["accept_expired"] = field(default="accept_expired", init=False)
    partner_id: str
    token: int


ClientEvent = Union[TradeProposed, SessionStarted, FriendRelationship, FriendMessage]
TradeEvent = Union[TradeChat, OfferChanged, PartnerReady, PartnerUnready, TradeEnded]
BotEvent = Union[ClientEvent, TradeEvent, ConfirmDue, AcceptExpired]


# ============================================================
# WIRE CONVERSION
# ============================================================

def parse_event(data: dict) -> BotEvent:
    """
    Parse a wire dictionary into a typed event.

    Raises:
        ValueError: If the event type is unknown
        KeyError: If a required field is missing

    Example:
        event = parse_event({"type": "chat", "text": "!add 82 5"})
        assert isinstance(event, TradeChat)
    """
    event_type = data.get("type")

    if event_type == "trade_proposed":
        return TradeProposed(trade_id=str(data["trade_id"]), partner_id=str(data["partner_id"]))
    elif event_type == "session_started":
        return SessionStarted(partner_id=str(data["partner_id"]))
    elif event_type == "friend":
        return FriendRelationship(
            partner_id=str(data["partner_id"]),
            relationship=Relationship(data["relationship"]),
        )
    elif event_type == "friend_msg":
        return FriendMessage(partner_id=str(data["partner_id"]), text=data.get("text", ""))
    elif event_type == "chat":
        return TradeChat(text=data.get("text", ""))
    elif event_type == "offer_changed":
        return OfferChanged(added=bool(data["added"]), item=Item.from_dict(data["item"]))
    elif event_type == "ready":
        return PartnerReady()
    elif event_type == "unready":
        return PartnerUnready()
    elif event_type == "ended":
        return TradeEnded(result=str(data["result"]))
    elif event_type == "confirm_due":
        return ConfirmDue(session_id=data["session_id"], token=int(data["token"]))
    elif event_type == "accept_expired":
        return AcceptExpired(partner_id=str(data["partner_id"]), token=int(data["token"]))
    else:
        raise ValueError(f"Unknown event type: {event_type}")


def to_dict(event: BotEvent) -> dict:
    """Convert a typed event back to its wire dictionary."""
    if isinstance(event, TradeProposed):
        return {"type": event.type, "trade_id": event.trade_id, "partner_id": event.partner_id}
    elif isinstance(event, SessionStarted):
        return {"type": event.type, "partner_id": event.partner_id}
    elif isinstance(event, FriendRelationship):
        return {
            "type": event.type,
            "partner_id": event.partner_id,
            "relationship": event.relationship.value,
        }
    elif isinstance(event, FriendMessage):
        return {"type": event.type, "partner_id": event.partner_id, "text": event.text}
    elif isinstance(event, TradeChat):
        return {"type": event.type, "text": event.text}
    elif isinstance(event, OfferChanged):
        return {"type": event.type, "added": event.added, "item": event.item.to_dict()}
    elif isinstance(event, (PartnerReady, PartnerUnready)):
        return {"type": event.type}
    elif isinstance(event, TradeEnded):
        return {"type": event.type, "result": event.result}
    elif isinstance(event, ConfirmDue):
        return {"type": event.type, "session_id": event.session_id, "token": event.token}
    elif isinstance(event, AcceptExpired):
        return {"type": event.type, "partner_id": event.partner_id, "token": event.token}
    else:
        raise ValueError(f"Unknown event type: {type(event)}")


def is_trade_event(event: BotEvent) -> bool:
    """True for events that belong to the open trade window."""
    return isinstance(event, (TradeChat, OfferChanged, PartnerReady, PartnerUnready, TradeEnded))
