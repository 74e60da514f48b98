"""
Logon Flow
==========

Gets the bot from "not connected" to "looking to trade".

Steps:
    1. Log on, using a saved device-trust token (sentry) if we have one
    2. If the account asks for a guard code, prompt on stdin and retry
    3. Save any new sentry the server hands us, keyed by account name
    4. Set persona name, stay Offline until the web session is up
    5. Web logon, then show as Looking To Trade
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from cratedump.errors import AuthError, GuardRequired
from cratedump.transport import LogonResult, PresenceStatus

from .config import AccountConfig

logger = logging.getLogger(__name__)

GUARD_PROMPT = "Steam Guard Code: "


def load_servers(path: str) -> Optional[List[Any]]:
    """Read an optional server-list override. None if the file is absent."""
    servers_path = Path(path)
    if not servers_path.exists():
        return None
    with open(servers_path) as f:
        return json.load(f)


class LogonFlow:
    """
    Credential logon with the guard-code retry loop.

    Args:
        client: Account collaborator (see transport.client)
        account: Credentials and persona
        prompt: Blocking line reader for the guard code; runs in a worker
            thread so the event loop keeps going
        max_guard_attempts: Codes to ask for before giving up
        servers_file: Optional server-list override handed to the client
    """

    def __init__(
        self,
        client: Any,
        account: AccountConfig,
        prompt: Callable[[str], str] = input,
        max_guard_attempts: int = 3,
        servers_file: Optional[str] = None,
    ):
        self.client = client
        self.account = account
        self.prompt = prompt
        self.max_guard_attempts = max_guard_attempts
        self.servers_file = servers_file

    @property
    def sentry_path(self) -> Path:
        return Path(self.account.sentry_dir) / f"sentryfile.{self.account.username}.hash"

    def read_sentry(self) -> Optional[bytes]:
        if self.sentry_path.exists():
            return self.sentry_path.read_bytes()
        return None

    def save_sentry(self, sentry: bytes) -> None:
        logger.info("Got new sentry file hash from Steam.  Saving.")
        self.sentry_path.write_bytes(sentry)

    async def _ask_guard_code(self) -> str:
        loop = asyncio.get_running_loop()
        code = await loop.run_in_executor(None, self.prompt, GUARD_PROMPT)
        return code.strip()

    async def log_on(self) -> LogonResult:
        """
        Run the whole flow.

        Raises:
            GuardRequired: Still asking for a code after max_guard_attempts
            AuthError: Any other logon failure (logged, not retried)
        """
        if self.servers_file:
            servers = load_servers(self.servers_file)
            if servers:
                logger.debug("Using %d servers from %s", len(servers), self.servers_file)
                self.client.servers = servers

        sentry = self.read_sentry()
        auth_code: Optional[str] = None
        attempts = 0

        while True:
            try:
                result = await self.client.logon(
                    self.account.username,
                    self.account.password,
                    sentry=sentry,
                    auth_code=auth_code,
                )
                break
            except GuardRequired:
                if attempts >= self.max_guard_attempts:
                    logger.error("Steam Guard code rejected %d times, giving up", attempts)
                    raise
                attempts += 1
                auth_code = await self._ask_guard_code()
            except AuthError as e:
                logger.error("Steam Error: %s", e.eresult)
                raise

        logger.info("Logged on to Steam")
        if result.sentry:
            self.save_sentry(result.sentry)

        await self.client.set_persona_name(self.account.persona_name)
        await self.client.set_status(PresenceStatus.OFFLINE)

        await self.client.web_logon()
        logger.info("Logged into web")
        await self.client.set_status(PresenceStatus.LOOKING_TO_TRADE)
        return result
