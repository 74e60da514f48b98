"""
runtime - The Shell
===================

Question this layer answers:
"How does this thing run as software?"

Run methods:
    cratedump --mode demo
    cratedump --mode replay --script events.yaml

What the runtime does:
- Loads YAML configuration
- Sets up console and file logging
- Logs on (guard code prompt, saved sentry, server list override)
- Runs the single dispatch loop (TradeBot)
- Answers friend requests and direct messages

What the runtime does NOT do:
- Choose items (that's allocation)
- Track trade phases (that's fsm)
"""

from .auth import LogonFlow, load_servers
from .bot import TradeBot
from .config import AccountConfig, Config, LoggingConfig, load_config
from .logs import configure_logging
from .runner import BotRuntime, RuntimeConfig

__all__ = [
    "LogonFlow",
    "load_servers",
    "TradeBot",
    "AccountConfig",
    "Config",
    "LoggingConfig",
    "load_config",
    "configure_logging",
    "BotRuntime",
    "RuntimeConfig",
]
