"""
Trade Session
=============

The single live negotiation with one partner.

A session owns, for its whole lifetime:
- the inventory snapshot (loaded once, dropped at the end)
- the offer state (what each side has put up)
- both readiness flags
- the pending confirm, if any
- the session gate lease (released exactly once, on every exit)

Handlers are coroutines called one at a time by the bot's dispatch loop.
The compensating delay before confirm is a ``call_later`` that posts a
``ConfirmDue`` event back onto that same loop, so the confirm never runs
concurrently with another handler and can be cancelled cleanly.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union
from uuid import uuid4

from cratedump.allocation import DEFAULT_CATEGORY, Allocation, allocate
from cratedump.coordination import SessionGate
from cratedump.errors import ConfirmationFailed, InventoryUnavailable
from cratedump.inventory import InventorySnapshot, Item, load_snapshot
from cratedump.protocol import (
    ConfirmDue,
    TradeResult,
    Unrecognized,
    messages,
    parse_command,
)
from cratedump.transport import Outbox, PresenceStatus

from .state_machine import COMMAND_PHASES, TradePhase, TradeStateMachine

logger = logging.getLogger(__name__)

# Log level and line per terminal phase, so every exit is distinguishable
_OUTCOME_LOG = {
    TradePhase.COMPLETE: (logging.INFO, "Trade complete"),
    TradePhase.CANCELLED: (logging.INFO, "Trade cancelled"),
    TradePhase.TIMED_OUT: (logging.WARNING, "Trade timed out"),
    TradePhase.ERROR: (logging.ERROR, "Trade failed"),
}


@dataclass
class TradeSettings:
    """What we trade and how long we wait before confirming."""
    appid: int = 440
    contextid: int = 2
    category: str = DEFAULT_CATEGORY
    confirm_delay: float = 1.5
    accept_timeout: float = 60.0


@dataclass
class OfferState:
    """Items currently in the trade, split by who put them there."""
    ours: List[Item] = field(default_factory=list)
    theirs: List[Item] = field(default_factory=list)

    def add_ours(self, item: Item) -> None:
        self.ours.append(item)

    def record(self, added: bool, item: Item) -> None:
        """Apply an offer-change notification. Never rejects anything."""
        if not added and any(i.asset_id == item.asset_id for i in self.ours):
            self.ours = [i for i in self.ours if i.asset_id != item.asset_id]
        elif added:
            self.theirs.append(item)
        else:
            self.theirs = [i for i in self.theirs if i.asset_id != item.asset_id]

    def clear(self) -> None:
        self.ours.clear()
        self.theirs.clear()


class TradeSession:
    """
    State machine for one trade.

    Args:
        partner_id: Who we are trading with
        channel: Negotiation channel collaborator (see transport.channel)
        client: Account collaborator for presence and direct messages
        gate: Session gate, already acquired for ``partner_id``
        settings: Trade settings (category, delay, inventory ids)
        post_event: Puts an event on the bot's queue. Used to deliver
            ``ConfirmDue`` after the compensating delay.
    """

    def __init__(
        self,
        partner_id: str,
        channel: Any,
        client: Any,
        gate: SessionGate,
        settings: Optional[TradeSettings] = None,
        post_event: Optional[Callable[[ConfirmDue], None]] = None,
    ):
        self.session_id = str(uuid4())
        self.partner_id = partner_id
        self.channel = channel
        self.client = client
        self.gate = gate
        self.settings = settings or TradeSettings()
        self._post_event = post_event or self._confirm_directly

        self.machine = TradeStateMachine()
        self.offer = OfferState()
        self.snapshot: Optional[InventorySnapshot] = None
        self.outbox = Outbox(channel.chat_msg, name=f"trade:{partner_id}")

        self.partner_ready = False
        self.self_ready = False
        self.confirm_issued = False
        self.end_reason: Optional[str] = None
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: Optional[datetime] = None

        self._confirm_handle: Optional[asyncio.TimerHandle] = None
        self._confirm_token = 0
        self._confirm_task: Optional[asyncio.Task] = None
        self._gate_released = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> TradePhase:
        return self.machine.phase

    @property
    def is_terminal(self) -> bool:
        return self.machine.is_terminal()

    @property
    def confirm_pending(self) -> bool:
        return self._confirm_handle is not None

    def check_invariants(self) -> bool:
        """
        Check that session invariants hold.

        These should NEVER be violated.
        """
        if self.phase == TradePhase.AWAITING_CONFIRM:
            assert self.partner_ready and self.self_ready
        if self.phase in COMMAND_PHASES:
            assert self.snapshot is not None
        if self.is_terminal:
            assert self.snapshot is None
            assert self._gate_released
            assert not self.confirm_pending
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> bool:
        """
        Open the trade window and capture our inventory.

        Returns:
            True when the session reached NEGOTIATING, False when it
            ended in ERROR because the inventory could not be loaded.
        """
        self.machine.transition(TradePhase.OPENING)
        logger.info("[%s] Opening trade", self.partner_id)

        try:
            await self.client.set_status(PresenceStatus.BUSY)
            await self.channel.open(self.partner_id)
            self.snapshot = await load_snapshot(
                self.channel,
                self.settings.appid,
                self.settings.contextid,
            )
        except InventoryUnavailable as e:
            logger.error("Error getting own inventory.  Cancelling trade. (%s)", e.reason)
            await self._abandon_open(messages.INVENTORY_FAILED, e.reason)
            return False
        except Exception as e:
            logger.error("[%s] Could not open trade: %s", self.partner_id, e)
            await self._abandon_open(messages.OPEN_FAILED, f"open failed: {e}")
            raise

        self.machine.transition(TradePhase.INVENTORY_LOADED)
        self.machine.transition(TradePhase.NEGOTIATING)

        self.outbox.start()
        self.outbox.post(*messages.WELCOME)
        return True

    async def abort(self, reason: str = "shutdown") -> None:
        """System-initiated cancel (bot shutting down)."""
        if self.is_terminal:
            return
        try:
            await self.channel.cancel()
        finally:
            await self._finish(TradePhase.CANCELLED, reason)

    # ------------------------------------------------------------------
    # Trade events
    # ------------------------------------------------------------------

    async def on_chat(self, text: str) -> Union[Allocation, Unrecognized, None]:
        """
        Handle trade chat. Only ``!add <series> <amount>`` does anything.

        Returns:
            The Allocation that was applied, Unrecognized, or None when the
            session is not taking commands.
        """
        logger.debug("TradeMsg: %s", text)
        if self.phase not in COMMAND_PHASES:
            logger.debug("[%s] Ignoring chat in %s", self.partner_id, self.phase.name)
            return None

        command = parse_command(text)
        if isinstance(command, Unrecognized):
            self.outbox.post(messages.UNRECOGNIZED)
            return command

        # Never offer the same asset twice
        pool = self.snapshot.without(i.asset_id for i in self.offer.ours)
        result = allocate(pool, self.settings.category, command)

        if result.is_partial:
            logger.debug(
                "User requested %d of series %d.  I only have %d available.",
                result.requested, result.series, result.available,
            )
            self.outbox.post(messages.shortfall(result.available, result.series))

        for item in result.chosen:
            logger.debug("Adding %s", item.name)
            await self.channel.add_item(item)
            self.offer.add_ours(item)

        return result

    async def on_offer_changed(self, added: bool, item: Item) -> None:
        """Observed for visibility only; never rejected."""
        if self.is_terminal:
            return
        if added:
            logger.info("User added: %s", item.name)
        else:
            logger.info("User removed: %s", item.name)
        self.offer.record(added, item)

    async def on_ready(self) -> None:
        """Partner is ready: ready up ourselves and schedule the confirm."""
        logger.debug("User clicked ready")
        if self.phase != TradePhase.NEGOTIATING:
            logger.debug("[%s] Ready ignored in %s", self.partner_id, self.phase.name)
            return

        self.partner_ready = True
        await self.channel.set_ready()
        self.self_ready = True
        self.machine.transition(TradePhase.AWAITING_CONFIRM)
        self._schedule_confirm()

    async def on_unready(self) -> None:
        """Partner took their ready back. The offer stays as it is."""
        logger.debug("User clicked unready")
        if self.phase != TradePhase.AWAITING_CONFIRM:
            return

        self.partner_ready = False
        self._cancel_confirm()
        self.machine.transition(TradePhase.NEGOTIATING)

    async def on_confirm_due(self, event: ConfirmDue) -> None:
        """The compensating delay elapsed: confirm, once."""
        if event.session_id != self.session_id or event.token != self._confirm_token:
            logger.debug("[%s] Stale confirm %s ignored", self.partner_id, event.token)
            return
        self._confirm_handle = None

        if self.phase != TradePhase.AWAITING_CONFIRM or self.confirm_issued:
            return
        if not (self.partner_ready and self.self_ready):
            return

        self.confirm_issued = True
        logger.debug("Confirming Trade")
        try:
            await self.channel.confirm()
        except ConfirmationFailed as e:
            try:
                await self.client.send_message(self.partner_id, messages.CONFIRM_FAILED)
            finally:
                await self._finish(TradePhase.ERROR, f"confirmation failed: {e}")
            return

        await self._finish(TradePhase.COMPLETE, "confirmed")

    async def on_ended(self, result: str) -> None:
        """The channel closed the trade."""
        if self.is_terminal:
            logger.debug("[%s] Trade ended (%s) after %s", self.partner_id, result, self.phase.name)
            return

        try:
            known = TradeResult(result)
        except ValueError:
            known = None

        if known is TradeResult.TIMEOUT:
            try:
                await self.client.send_message(self.partner_id, messages.TIMED_OUT)
            finally:
                await self._finish(TradePhase.TIMED_OUT, result)
        elif known is TradeResult.COMPLETE:
            await self._finish(TradePhase.COMPLETE, result)
        elif known is TradeResult.FAILED:
            await self._finish(TradePhase.ERROR, result)
        else:
            await self._finish(TradePhase.CANCELLED, result)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _schedule_confirm(self) -> None:
        self._cancel_confirm()
        self._confirm_token += 1
        event = ConfirmDue(session_id=self.session_id, token=self._confirm_token)
        loop = asyncio.get_running_loop()
        self._confirm_handle = loop.call_later(self.settings.confirm_delay, self._post_event, event)

    def _cancel_confirm(self) -> None:
        if self._confirm_handle is not None:
            self._confirm_handle.cancel()
            self._confirm_handle = None
            logger.debug("[%s] Pending confirm cancelled", self.partner_id)

    def _confirm_directly(self, event: ConfirmDue) -> None:
        # Standalone use without a bot queue
        self._confirm_task = asyncio.get_running_loop().create_task(self.on_confirm_due(event))
        self._confirm_task.add_done_callback(self._confirm_done)

    def _confirm_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("[%s] Confirm failed: %r", self.partner_id, error)

    async def _abandon_open(self, notice: str, reason: str) -> None:
        """Tell the partner, close the window, end in ERROR."""
        try:
            await self.client.send_message(self.partner_id, notice)
            await self.channel.cancel()
        finally:
            await self._finish(TradePhase.ERROR, reason)

    def _release_gate(self) -> None:
        if self._gate_released:
            return
        self._gate_released = True
        self.gate.release(self.partner_id)

    async def _finish(self, phase: TradePhase, reason: str) -> None:
        """Enter a terminal phase. Runs at most once per session."""
        if self.is_terminal:
            return

        self._cancel_confirm()
        self.machine.transition(phase)
        self.end_reason = reason
        self.ended_at = datetime.now(timezone.utc)
        self.snapshot = None
        self.offer.clear()
        self._release_gate()

        level, line = _OUTCOME_LOG[phase]
        logger.log(level, "[%s] %s: %s", self.partner_id, line, reason)

        try:
            await self.outbox.close()
        finally:
            await self.client.set_status(PresenceStatus.LOOKING_TO_TRADE)
