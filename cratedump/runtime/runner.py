"""
Runtime - The Shell
===================

The entrypoint that wraps the whole bot.

This file provides:
- A scripted demo trade against the in-memory collaborators
- Replay of a YAML event script through the real dispatch loop
- A summary of how the trade ended

Run methods:
    cratedump --mode demo
    cratedump --mode replay --script events.yaml
    python -m cratedump.runtime.runner --mode demo
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

from cratedump.fsm import TradeSession
from cratedump.protocol import parse_event
from cratedump.transport import LocalClient, LocalTradeChannel

from .auth import LogonFlow
from .bot import TradeBot
from .config import Config, load_config
from .logs import configure_logging

logger = logging.getLogger(__name__)


# ============================================================================
# Runtime Configuration
# ============================================================================

@dataclass
class RuntimeConfig:
    """Runtime configuration (how to run, not what to trade)."""
    mode: str = "demo"              # demo, replay
    config_path: Optional[str] = None
    script_path: Optional[str] = None
    verbose: bool = True


# ============================================================================
# Demo Script
# ============================================================================

def _crate(asset_id: str, series: int) -> Dict[str, Any]:
    return {
        "id": asset_id,
        "name": f"Mann Co. Supply Crate Series #{series}",
        "tags": [{"internal_name": "Supply Crate"}, {"internal_name": "Unique"}],
    }


DEMO_INVENTORY = [
    _crate("101", 82),
    _crate("102", 82),
    _crate("103", 82),
    _crate("104", 83),
    _crate("105", 2),
    {"id": "200", "name": "Team Captain", "tags": [{"internal_name": "Cosmetic"}]},
]

DEMO_EVENTS = [
    {"type": "friend", "partner_id": "76561198000000001", "relationship": "pending_invitee"},
    {"type": "friend_msg", "partner_id": "76561198000000001", "text": "hi"},
    {"type": "trade_proposed", "trade_id": "1", "partner_id": "76561198000000001"},
    {"type": "trade_proposed", "trade_id": "2", "partner_id": "76561198000000002"},
    {"type": "session_started", "partner_id": "76561198000000001"},
    {"type": "chat", "text": "hello?"},
    {"type": "chat", "text": "!add 82 5"},
    {"type": "offer_changed", "added": True,
     "item": {"id": "900", "name": "Refined Metal", "tags": [{"internal_name": "Craft Item"}]}},
    {"type": "ready"},
    {"type": "wait", "seconds": 2.0},
]


# ============================================================================
# Runtime
# ============================================================================

class BotRuntime:
    """
    Runs the bot against in-memory collaborators.

    A production deployment replaces LocalClient and LocalTradeChannel with
    objects that talk to the real service; nothing else changes.
    """

    def __init__(self, config: RuntimeConfig):
        self.runtime_config = config
        self.system_config: Optional[Config] = None
        self._initialized = False

    def initialize(self) -> None:
        if self._initialized:
            return
        self.system_config = load_config(self.runtime_config.config_path)
        configure_logging(self.system_config.logging, console=self.runtime_config.verbose)
        self._initialized = True

    async def run_script(
        self,
        events: List[Dict[str, Any]],
        inventory: Optional[List[Dict[str, Any]]],
        client: Optional[LocalClient] = None,
    ) -> TradeBot:
        """
        Log on, feed ``events`` through the bot in order, and stop.

        ``{"type": "wait", "seconds": N}`` entries pause the script so
        scheduled continuations (the confirm delay) can fire.
        """
        client = client or LocalClient(password=self.system_config.account.password)
        channel = LocalTradeChannel(inventory=inventory)

        await LogonFlow(
            client,
            self.system_config.account,
            servers_file=self.system_config.servers_file,
        ).log_on()

        bot = TradeBot(client, channel, self.system_config.trade)
        loop_task = asyncio.create_task(bot.run())

        for entry in events:
            if entry.get("type") == "wait":
                await asyncio.sleep(float(entry.get("seconds", 0)))
            else:
                bot.post(parse_event(entry))
            await bot.drain()

        await bot.stop()
        await loop_task
        return bot

    def shutdown(self) -> None:
        logging.getLogger("cratedump").debug("Runtime shutting down")
        self._initialized = False


def load_script(path: str) -> Dict[str, Any]:
    """
    Load a replay script.

    Format:
        inventory: [ {id, name, tags}, ... ]   # optional, null = unreachable
        events:    [ {type, ...}, ... ]
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, list):
        return {"inventory": DEMO_INVENTORY, "events": data}
    return {"inventory": data.get("inventory", DEMO_INVENTORY), "events": data.get("events", [])}


# ============================================================================
# CLI Entrypoints
# ============================================================================

def print_summary(session: Optional[TradeSession]) -> None:
    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    if session is None:
        print("No trade was opened")
    else:
        duration = (session.ended_at or session.started_at) - session.started_at
        print(f"Session: {session.session_id}")
        print(f"Partner: {session.partner_id}")
        print(f"Outcome: {session.phase.name}")
        print(f"Reason: {session.end_reason or 'N/A'}")
        print(f"Duration: {duration.total_seconds() * 1000:.2f}ms")
    print("=" * 50)


def main():
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="CrateDump trade bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cratedump --mode demo                         # Scripted demo trade
  cratedump --mode replay --script events.yaml  # Replay recorded events
""",
    )

    parser.add_argument("--mode", choices=["demo", "replay"], default="demo")
    parser.add_argument("--script", type=str, help="Replay script (YAML)")
    parser.add_argument("--config", type=str, help="Config file path")
    parser.add_argument("--quiet", action="store_true")

    args = parser.parse_args()
    if args.mode == "replay" and not args.script:
        parser.error("--mode replay needs --script")

    runtime = BotRuntime(RuntimeConfig(
        mode=args.mode,
        config_path=args.config,
        script_path=args.script,
        verbose=not args.quiet,
    ))

    try:
        runtime.initialize()

        if args.mode == "demo":
            script = {"inventory": DEMO_INVENTORY, "events": DEMO_EVENTS}
        else:
            script = load_script(args.script)

        bot = asyncio.run(runtime.run_script(script["events"], script["inventory"]))
        print_summary(bot.last_session)

    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
