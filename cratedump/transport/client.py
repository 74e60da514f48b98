"""
Local Client
============

In-memory stand-in for the account connection collaborator: logon,
presence, direct messages, trade proposals and friends.

A production client needs these coroutines:

    logon(account_name, password, sentry=None, auth_code=None) -> LogonResult
    web_logon()
    set_persona_name(name)
    set_status(PresenceStatus)
    send_message(partner_id, text)
    respond_to_trade(trade_id, accept)
    add_friend(partner_id)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from cratedump.errors import GuardRequired, InvalidCredentials

logger = logging.getLogger(__name__)

# Result code the account server uses for "guard code required"
ACCOUNT_LOGON_DENIED = 63
INVALID_PASSWORD = 5


class PresenceStatus(str, Enum):
    """What other users see next to the bot's name."""
    OFFLINE = "offline"
    ONLINE = "online"
    BUSY = "busy"
    LOOKING_TO_TRADE = "looking_to_trade"


@dataclass
class LogonResult:
    """Successful logon. ``sentry`` is set when a new device token was issued."""
    session_token: str
    sentry: Optional[bytes] = None


@dataclass
class LocalClient:
    """
    Recording client.

    Guard behaviour: when ``guard_code`` is set, logon succeeds only with a
    matching ``sentry`` or ``auth_code``. A successful code logon issues
    ``issued_sentry`` as the new device token.
    """
    password: str = "password"
    guard_code: Optional[str] = None
    issued_sentry: bytes = b"sentry-hash"

    logged_on: bool = False
    web_logged_on: bool = False
    persona_name: Optional[str] = None
    servers: List[Any] = field(default_factory=list)
    logon_attempts: List[dict] = field(default_factory=list)
    statuses: List[PresenceStatus] = field(default_factory=list)
    messages: List[Tuple[str, str]] = field(default_factory=list)
    trade_responses: List[Tuple[str, bool]] = field(default_factory=list)
    friends_added: List[str] = field(default_factory=list)

    async def logon(
        self,
        account_name: str,
        password: str,
        sentry: Optional[bytes] = None,
        auth_code: Optional[str] = None,
    ) -> LogonResult:
        self.logon_attempts.append({
            "account_name": account_name,
            "sentry": sentry,
            "auth_code": auth_code,
        })
        if password != self.password:
            raise InvalidCredentials("invalid password", eresult=INVALID_PASSWORD)

        new_sentry = None
        if self.guard_code is not None:
            if auth_code == self.guard_code:
                new_sentry = self.issued_sentry
            elif sentry != self.issued_sentry:
                raise GuardRequired("guard code required", eresult=ACCOUNT_LOGON_DENIED)

        self.logged_on = True
        return LogonResult(session_token=f"session-{account_name}", sentry=new_sentry)

    async def web_logon(self) -> None:
        self.web_logged_on = True

    async def set_persona_name(self, name: str) -> None:
        self.persona_name = name

    async def set_status(self, status: PresenceStatus) -> None:
        self.statuses.append(status)

    async def send_message(self, partner_id: str, text: str) -> None:
        self.messages.append((partner_id, text))

    async def respond_to_trade(self, trade_id: str, accept: bool) -> None:
        self.trade_responses.append((trade_id, accept))

    async def add_friend(self, partner_id: str) -> None:
        self.friends_added.append(partner_id)

    @property
    def status(self) -> Optional[PresenceStatus]:
        return self.statuses[-1] if self.statuses else None

    def messages_to(self, partner_id: str) -> List[str]:
        return [text for pid, text in self.messages if pid == partner_id]
