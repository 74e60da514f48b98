"""
Trade Bot
=========

Wires collaborators, the session gate and the trade session together
behind ONE ordered event queue.

Every inbound event (client or trade) is posted to ``events`` and handled
by a single dispatch loop, one at a time. That is the whole concurrency
model: handlers for a session never interleave. Shutdown runs on the same
loop, after everything already queued.

The gate is taken when a proposal is accepted. Until the trade window
opens, the bot holds it for that partner and gives it back if the channel
ends the trade first or ``accept_timeout`` passes.

```python
bot = TradeBot(client, channel, settings)
task = asyncio.create_task(bot.run())
bot.post(TradeProposed(trade_id="1", partner_id="765..."))
```
"""

import asyncio
import logging
from typing import Any, Optional

from cratedump.coordination import ProposalPolicy, SessionGate
from cratedump.fsm import TradeSession, TradeSettings
from cratedump.protocol import (
    AcceptExpired,
    BotEvent,
    ConfirmDue,
    FriendMessage,
    FriendRelationship,
    OfferChanged,
    PartnerReady,
    PartnerUnready,
    Relationship,
    SessionStarted,
    TradeChat,
    TradeEnded,
    TradeProposed,
    is_trade_event,
    messages,
)

logger = logging.getLogger(__name__)

_STOP = object()


class TradeBot:
    """
    The bot: one identity, at most one trade at a time.

    Args:
        client: Account collaborator (presence, direct messages, proposals)
        channel: Negotiation channel collaborator for the trade window
        settings: Trade settings passed to each session
        gate: Session gate (a fresh one if not given)
    """

    def __init__(
        self,
        client: Any,
        channel: Any,
        settings: Optional[TradeSettings] = None,
        gate: Optional[SessionGate] = None,
    ):
        self.client = client
        self.channel = channel
        self.settings = settings or TradeSettings()
        self.gate = gate or SessionGate()
        self.policy = ProposalPolicy(self.gate)

        self.events: asyncio.Queue = asyncio.Queue()
        self.session: Optional[TradeSession] = None
        self.last_session: Optional[TradeSession] = None

        # Accepted proposal still waiting for its trade window
        self.pending_partner: Optional[str] = None
        self._accept_handle: Optional[asyncio.TimerHandle] = None
        self._accept_token = 0

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def post(self, event: BotEvent) -> None:
        """Queue an event. Safe to call from callbacks on the loop."""
        self.events.put_nowait(event)

    async def run(self) -> None:
        """Dispatch events until ``stop``."""
        logger.debug("Dispatch loop started")
        while True:
            event = await self.events.get()
            stopping = event is _STOP
            try:
                if stopping:
                    await self._shutdown()
                else:
                    await self.dispatch(event)
            except Exception:
                name = "shutdown" if stopping else type(event).__name__
                logger.exception("Handler failed for %s", name)
            finally:
                self.events.task_done()
            if stopping:
                break
        logger.debug("Dispatch loop stopped")

    async def drain(self) -> None:
        """Wait until queued events and queued trade chat are all handled."""
        await self.events.join()
        if self.session is not None:
            await self.session.outbox.join()

    async def stop(self) -> None:
        """
        Ask the dispatch loop to stop.

        Events already queued are handled first. The loop then cancels any
        live trade, frees a pending accept, and exits.
        """
        self.events.put_nowait(_STOP)

    async def _shutdown(self) -> None:
        self._release_pending("shutdown")
        if self.session is not None and not self.session.is_terminal:
            try:
                await self.session.abort("shutdown")
            finally:
                self._retire_session()

    async def dispatch(self, event: BotEvent) -> None:
        try:
            if isinstance(event, TradeProposed):
                await self.on_trade_proposed(event)
            elif isinstance(event, SessionStarted):
                await self.on_session_started(event)
            elif isinstance(event, FriendRelationship):
                await self.on_friend(event)
            elif isinstance(event, FriendMessage):
                await self.on_friend_message(event)
            elif isinstance(event, ConfirmDue):
                if self.session is not None:
                    await self.session.on_confirm_due(event)
            elif isinstance(event, AcceptExpired):
                self.on_accept_expired(event)
            elif is_trade_event(event):
                await self.on_trade_event(event)
            else:
                logger.warning("Unhandled event %r", event)
        finally:
            if self.session is not None and self.session.is_terminal:
                self._retire_session()

    def _retire_session(self) -> None:
        self.last_session = self.session
        self.session = None

    # ------------------------------------------------------------------
    # Client handlers
    # ------------------------------------------------------------------

    async def on_trade_proposed(self, event: TradeProposed) -> None:
        result = self.policy.evaluate(event.partner_id)
        if not result.allowed:
            await self.client.respond_to_trade(event.trade_id, False)
            await self.client.send_message(event.partner_id, messages.BUSY)
            logger.info("[%s] Declined trade request: %s", event.partner_id, result.reason)
            return

        try:
            await self.client.respond_to_trade(event.trade_id, True)
        except Exception:
            self.gate.release(event.partner_id)
            raise
        logger.info("[%s] Accepted trade request", event.partner_id)
        self._await_session(event.partner_id)

    async def on_session_started(self, event: SessionStarted) -> None:
        if self.session is not None:
            logger.warning(
                "[%s] Session start ignored, already trading with %s",
                event.partner_id, self.session.partner_id,
            )
            return

        result = self.policy.validate_session_start(event.partner_id)
        if not result.allowed:
            logger.warning("[%s] Session start ignored: %s", event.partner_id, result.reason)
            return

        self._clear_pending()
        self.session = TradeSession(
            partner_id=event.partner_id,
            channel=self.channel,
            client=self.client,
            gate=self.gate,
            settings=self.settings,
            post_event=self.post,
        )
        await self.session.open()

    async def on_friend(self, event: FriendRelationship) -> None:
        if event.relationship is Relationship.PENDING_INVITEE:
            logger.info("[%s] Accepted friend request", event.partner_id)
            await self.client.add_friend(event.partner_id)
        elif event.relationship is Relationship.NONE:
            logger.info("[%s] Un-friended", event.partner_id)

    async def on_friend_message(self, event: FriendMessage) -> None:
        logger.info("[%s] MSG: %s", event.partner_id, event.text)
        await self.client.send_message(event.partner_id, messages.GREETING)

    # ------------------------------------------------------------------
    # Trade handlers
    # ------------------------------------------------------------------

    async def on_trade_event(self, event: BotEvent) -> None:
        session = self.session
        if session is None:
            if isinstance(event, TradeEnded) and self.pending_partner is not None:
                self._release_pending(f"trade ended ({event.result}) before it opened")
            else:
                logger.debug("No open trade; dropping %s", type(event).__name__)
            return

        if isinstance(event, TradeChat):
            await session.on_chat(event.text)
        elif isinstance(event, OfferChanged):
            await session.on_offer_changed(event.added, event.item)
        elif isinstance(event, PartnerReady):
            await session.on_ready()
        elif isinstance(event, PartnerUnready):
            await session.on_unready()
        elif isinstance(event, TradeEnded):
            await session.on_ended(event.result)

    # ------------------------------------------------------------------
    # Accepted, not yet opened
    # ------------------------------------------------------------------

    def on_accept_expired(self, event: AcceptExpired) -> None:
        if event.token != self._accept_token or event.partner_id != self.pending_partner:
            logger.debug("[%s] Stale accept timeout ignored", event.partner_id)
            return
        self._accept_handle = None
        self._release_pending("trade window never opened")

    def _await_session(self, partner_id: str) -> None:
        """Hold the gate for ``partner_id`` until the window opens or the wait runs out."""
        self._clear_pending()
        self._accept_token += 1
        self.pending_partner = partner_id
        loop = asyncio.get_running_loop()
        self._accept_handle = loop.call_later(
            self.settings.accept_timeout,
            self.post,
            AcceptExpired(partner_id=partner_id, token=self._accept_token),
        )

    def _clear_pending(self) -> None:
        if self._accept_handle is not None:
            self._accept_handle.cancel()
            self._accept_handle = None
        self.pending_partner = None

    def _release_pending(self, reason: str) -> None:
        partner_id = self.pending_partner
        if partner_id is None:
            return
        self._clear_pending()
        self.gate.release(partner_id)
        logger.info("[%s] Accepted trade abandoned: %s", partner_id, reason)
