"""
Tests for FSM Layer
===================
"""

import asyncio
import logging

import pytest
from conftest import PARTNER

from cratedump.allocation import Allocation
from cratedump.coordination import SessionGate
from cratedump.errors import InvalidTransition
from cratedump.fsm import TERMINAL_PHASES, TradePhase, TradeSession, TradeStateMachine
from cratedump.inventory import Item
from cratedump.protocol import Unrecognized, messages
from cratedump.transport import LocalClient, LocalTradeChannel, PresenceStatus


async def open_session(inventory, settings, channel=None):
    """Acquire the gate for PARTNER and open a session, like the bot does."""
    gate = SessionGate()
    gate.try_acquire(PARTNER)
    client = LocalClient()
    channel = channel or LocalTradeChannel(inventory=inventory)
    session = TradeSession(PARTNER, channel, client, gate, settings)
    await session.open()
    return session, channel, client, gate


class UnopenableChannel(LocalTradeChannel):
    async def open(self, partner_id):
        await super().open(partner_id)
        raise ConnectionError("trade window refused")


class BrokenConfirmChannel(LocalTradeChannel):
    async def confirm(self):
        await super().confirm()
        raise RuntimeError("socket closed")


class TestStateMachine:
    """Test the phase transition table."""

    def test_starts_idle(self):
        assert TradeStateMachine().phase == TradePhase.IDLE

    def test_happy_path(self):
        machine = TradeStateMachine()
        for phase in (
            TradePhase.OPENING,
            TradePhase.INVENTORY_LOADED,
            TradePhase.NEGOTIATING,
            TradePhase.AWAITING_CONFIRM,
            TradePhase.COMPLETE,
        ):
            machine.transition(phase)

        assert machine.is_terminal()
        assert len(machine.history) == 5

    def test_cannot_skip_inventory(self):
        """NEGOTIATING is only reachable after the snapshot is loaded."""
        machine = TradeStateMachine()
        machine.transition(TradePhase.OPENING)
        with pytest.raises(InvalidTransition):
            machine.transition(TradePhase.NEGOTIATING)

    def test_cannot_confirm_from_opening(self):
        machine = TradeStateMachine()
        machine.transition(TradePhase.OPENING)
        assert machine.can_transition(TradePhase.AWAITING_CONFIRM) is False

    def test_terminal_phases_have_no_transitions(self):
        """Terminal phases have no outgoing transitions."""
        for phase in TERMINAL_PHASES:
            assert len(TradeStateMachine.TRANSITIONS[phase]) == 0

    def test_every_live_phase_can_end(self):
        """Termination is reachable from every live phase."""
        for phase, targets in TradeStateMachine.TRANSITIONS.items():
            if phase in TERMINAL_PHASES:
                continue
            assert {TradePhase.CANCELLED, TradePhase.TIMED_OUT, TradePhase.ERROR} <= targets


class TestSessionOpen:
    """Test opening a session."""

    def test_open_reaches_negotiating(self, inventory, settings):
        async def scenario():
            session, channel, client, gate = await open_session(inventory, settings)
            await session.outbox.join()
            return session, channel, client, gate

        session, channel, client, gate = asyncio.run(scenario())

        assert session.phase == TradePhase.NEGOTIATING
        assert len(session.snapshot) == len(inventory)
        assert gate.holder == PARTNER
        assert client.statuses == [PresenceStatus.BUSY]
        assert channel.called("open")[0].args == (PARTNER,)
        assert session.check_invariants()

    def test_welcome_lines_sent_in_order(self, inventory, settings):
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            await session.outbox.join()
            return channel

        channel = asyncio.run(scenario())
        assert channel.chat_log == list(messages.WELCOME)

    def test_inventory_failure_ends_in_error(self, settings):
        """Load failure: ERROR, partner told, channel cancelled, gate free."""
        async def scenario():
            return await open_session(None, settings)

        session, channel, client, gate = asyncio.run(scenario())

        assert session.phase == TradePhase.ERROR
        assert client.messages_to(PARTNER) == [messages.INVENTORY_FAILED]
        assert channel.called("cancel")
        assert not gate.held
        assert session.snapshot is None
        assert client.status == PresenceStatus.LOOKING_TO_TRADE
        assert session.check_invariants()

    def test_gate_can_be_retaken_after_failure(self, settings):
        async def scenario():
            return await open_session([], settings)

        _, _, _, gate = asyncio.run(scenario())
        assert gate.try_acquire("someone-else") is True

    def test_channel_open_error_notifies_and_cancels(self, inventory, settings):
        """Any open failure: partner told, channel cancelled, ERROR, error re-raised."""
        gate = SessionGate()
        gate.try_acquire(PARTNER)
        client = LocalClient()
        channel = UnopenableChannel(inventory=inventory)
        session = TradeSession(PARTNER, channel, client, gate, settings)

        with pytest.raises(ConnectionError):
            asyncio.run(session.open())

        assert session.phase == TradePhase.ERROR
        assert client.messages_to(PARTNER) == [messages.OPEN_FAILED]
        assert channel.called("cancel")
        assert not gate.held
        assert client.status == PresenceStatus.LOOKING_TO_TRADE
        assert session.check_invariants()


class TestSessionCommands:
    """Test chat commands during negotiation."""

    def test_shortfall_scenario(self, inventory, settings):
        """!add 82 5 against three #82 crates: 3 added, shortfall reported."""
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            result = await session.on_chat("!add 82 5")
            await session.outbox.join()
            return session, channel, result

        session, channel, result = asyncio.run(scenario())

        assert isinstance(result, Allocation)
        assert result.available == 3
        assert result.shortfall == 2
        assert [i.asset_id for i in channel.added_items] == ["101", "102", "103"]
        assert channel.chat_log[-1] == "I have 3 crates of series 82 available."
        assert [i.asset_id for i in session.offer.ours] == ["101", "102", "103"]

    def test_zero_quantity_no_notice(self, inventory, settings):
        """!add 82 0 adds nothing and sends no shortfall line."""
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            await session.on_chat("!add 82 0")
            await session.outbox.join()
            return channel

        channel = asyncio.run(scenario())

        assert channel.added_items == []
        assert channel.chat_log == list(messages.WELCOME)

    def test_unrecognized_command(self, inventory, settings):
        """Unknown chat gets the usage line and changes nothing."""
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            result = await session.on_chat("gimme crates")
            await session.outbox.join()
            return session, channel, result

        session, channel, result = asyncio.run(scenario())

        assert isinstance(result, Unrecognized)
        assert channel.chat_log[-1] == messages.UNRECOGNIZED
        assert session.phase == TradePhase.NEGOTIATING
        assert channel.added_items == []

    def test_repeat_add_does_not_reoffer(self, inventory, settings):
        """A second !add continues from the crates not yet offered."""
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            await session.on_chat("!add 82 2")
            second = await session.on_chat("!add 82 2")
            await session.outbox.join()
            return channel, second

        channel, second = asyncio.run(scenario())

        assert [i.asset_id for i in channel.added_items] == ["101", "102", "103"]
        assert second.available == 1
        assert channel.chat_log[-1] == "I have 1 crates of series 82 available."

    def test_chat_before_open_ignored(self, settings):
        async def scenario():
            gate = SessionGate()
            gate.try_acquire(PARTNER)
            session = TradeSession(PARTNER, LocalTradeChannel(), LocalClient(), gate, settings)
            return await session.on_chat("!add 82 1")

        assert asyncio.run(scenario()) is None

    def test_offer_changes_are_recorded(self, inventory, settings):
        """Partner additions and removals are observed, never rejected."""
        metal = Item(asset_id="900", name="Refined Metal", tags=("Craft Item",))

        async def scenario():
            session, _, _, _ = await open_session(inventory, settings)
            await session.on_chat("!add 82 2")
            await session.on_offer_changed(True, metal)
            # Partner takes one of our crates back out
            await session.on_offer_changed(False, session.offer.ours[0])
            return session

        session = asyncio.run(scenario())

        assert [i.asset_id for i in session.offer.theirs] == ["900"]
        assert [i.asset_id for i in session.offer.ours] == ["102"]
        assert session.phase == TradePhase.NEGOTIATING


class TestSessionReadiness:
    """Test the readiness handshake and the delayed confirm."""

    def test_confirm_after_delay_completes(self, inventory, settings):
        """Mutual ready, confirm after delay, COMPLETE, everything released."""
        async def scenario():
            session, channel, client, gate = await open_session(inventory, settings)
            await session.on_chat("!add 82 1")
            await session.on_ready()
            ready_phase = session.phase
            assert session.partner_ready and session.self_ready
            assert session.check_invariants()
            await asyncio.sleep(settings.confirm_delay * 5)
            return session, channel, client, gate, ready_phase

        session, channel, client, gate, ready_phase = asyncio.run(scenario())

        assert ready_phase == TradePhase.AWAITING_CONFIRM
        assert channel.called("set_ready")
        assert len(channel.called("confirm")) == 1
        assert session.phase == TradePhase.COMPLETE
        assert session.snapshot is None
        assert session.offer.ours == []
        assert not gate.held
        assert client.status == PresenceStatus.LOOKING_TO_TRADE
        assert session.check_invariants()

    def test_unready_during_delay_suppresses_confirm(self, inventory, settings):
        """Unready cancels the pending confirm and keeps the offer."""
        async def scenario():
            session, channel, _, gate = await open_session(inventory, settings)
            await session.on_chat("!add 82 2")
            await session.on_ready()
            await session.on_unready()
            await asyncio.sleep(settings.confirm_delay * 5)
            return session, channel, gate

        session, channel, gate = asyncio.run(scenario())

        assert session.phase == TradePhase.NEGOTIATING
        assert session.partner_ready is False
        assert channel.called("confirm") == []
        assert len(session.offer.ours) == 2
        assert gate.holder == PARTNER

    def test_ready_again_after_unready(self, inventory, settings):
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            await session.on_ready()
            await session.on_unready()
            await session.on_ready()
            await asyncio.sleep(settings.confirm_delay * 5)
            return session, channel

        session, channel = asyncio.run(scenario())

        assert len(channel.called("confirm")) == 1
        assert session.phase == TradePhase.COMPLETE

    def test_unready_outside_confirm_is_noop(self, inventory, settings):
        async def scenario():
            session, _, _, _ = await open_session(inventory, settings)
            await session.on_unready()
            return session

        assert asyncio.run(scenario()).phase == TradePhase.NEGOTIATING

    def test_ended_during_delay_cancels_confirm(self, inventory, settings):
        async def scenario():
            session, channel, _, _ = await open_session(inventory, settings)
            await session.on_ready()
            await session.on_ended("cancelled")
            await asyncio.sleep(settings.confirm_delay * 5)
            return session, channel

        session, channel = asyncio.run(scenario())

        assert session.phase == TradePhase.CANCELLED
        assert channel.called("confirm") == []
        assert not session.confirm_pending

    def test_confirm_failure_is_error(self, inventory, settings):
        """A refused confirm ends in ERROR, is reported, and is not retried."""
        async def scenario():
            channel = LocalTradeChannel(inventory=inventory, fail_confirm=True)
            session, channel, client, gate = await open_session(inventory, settings, channel=channel)
            await session.on_ready()
            await asyncio.sleep(settings.confirm_delay * 5)
            return session, channel, client, gate

        session, channel, client, gate = asyncio.run(scenario())

        assert session.phase == TradePhase.ERROR
        assert len(channel.called("confirm")) == 1
        assert client.messages_to(PARTNER) == [messages.CONFIRM_FAILED]
        assert not gate.held

    def test_standalone_confirm_task_kept(self, inventory, settings):
        """Without a bot queue the confirm runs as a task the session holds on to."""
        async def scenario():
            session, channel, client, gate = await open_session(inventory, settings)
            await session.on_ready()
            await asyncio.sleep(settings.confirm_delay * 5)
            return session

        session = asyncio.run(scenario())

        assert session._confirm_task is not None
        assert session._confirm_task.done()
        assert session.phase == TradePhase.COMPLETE

    def test_unexpected_confirm_error_logged(self, inventory, settings, caplog):
        async def scenario():
            channel = BrokenConfirmChannel(inventory=inventory)
            session, channel, client, gate = await open_session(inventory, settings, channel=channel)
            await session.on_ready()
            await asyncio.sleep(settings.confirm_delay * 5)
            return session

        with caplog.at_level(logging.ERROR, logger="cratedump"):
            session = asyncio.run(scenario())

        assert "Confirm failed" in caplog.text
        assert "socket closed" in caplog.text
        assert session.confirm_issued


class TestSessionEnd:
    """Test termination classification."""

    @pytest.mark.parametrize("result,phase", [
        ("complete", TradePhase.COMPLETE),
        ("timeout", TradePhase.TIMED_OUT),
        ("cancelled", TradePhase.CANCELLED),
        ("failed", TradePhase.ERROR),
        ("empty", TradePhase.CANCELLED),
    ])
    def test_ended_result_mapping(self, inventory, settings, result, phase):
        async def scenario():
            session, _, _, gate = await open_session(inventory, settings)
            await session.on_ended(result)
            return session, gate

        session, gate = asyncio.run(scenario())

        assert session.phase == phase
        assert session.end_reason == result
        assert not gate.held

    def test_timeout_notifies_partner(self, inventory, settings):
        async def scenario():
            session, _, client, _ = await open_session(inventory, settings)
            await session.on_ended("timeout")
            return client

        client = asyncio.run(scenario())
        assert client.messages_to(PARTNER) == [messages.TIMED_OUT]

    def test_second_end_ignored(self, inventory, settings):
        """Only the first terminal event counts; the gate is released once."""
        async def scenario():
            session, _, _, _ = await open_session(inventory, settings)
            await session.on_ended("complete")
            await session.on_ended("timeout")
            return session

        session = asyncio.run(scenario())
        assert session.phase == TradePhase.COMPLETE

    def test_abort_cancels_channel(self, inventory, settings):
        async def scenario():
            session, channel, _, gate = await open_session(inventory, settings)
            await session.abort()
            return session, channel, gate

        session, channel, gate = asyncio.run(scenario())

        assert session.phase == TradePhase.CANCELLED
        assert channel.called("cancel")
        assert not gate.held
