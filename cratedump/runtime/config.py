"""
Configuration Loader
====================

Loads configuration for the trade bot.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from cratedump.allocation import DEFAULT_CATEGORY
from cratedump.fsm import TradeSettings

logger = logging.getLogger(__name__)


@dataclass
class AccountConfig:
    """Bot account credentials and identity."""
    username: str = "your_username"
    password: str = "your_password"
    persona_name: str = "CrateDumpBot"
    sentry_dir: str = "."


@dataclass
class LoggingConfig:
    """Console and file sinks."""
    console_level: str = "DEBUG"
    file_level: str = "INFO"
    filename: Optional[str] = "cratedump.log"


@dataclass
class Config:
    """Complete bot configuration."""
    account: AccountConfig = field(default_factory=AccountConfig)
    trade: TradeSettings = field(default_factory=TradeSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    servers_file: str = "servers.json"

    @classmethod
    def default(cls) -> "Config":
        return cls()


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file or return defaults.

    Args:
        config_path: Path to YAML config file (optional)

    Returns:
        Config object with all settings; missing keys keep their defaults
    """
    if config_path is None:
        return Config.default()

    path = Path(config_path)
    if not path.exists():
        logger.warning("%s not found, using defaults", config_path)
        return Config.default()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    account_data = data.get("account", {})
    trade_data = data.get("trade", {})
    logging_data = data.get("logging", {})

    return Config(
        account=AccountConfig(
            username=account_data.get("username", "your_username"),
            password=account_data.get("password", "your_password"),
            persona_name=account_data.get("persona_name", "CrateDumpBot"),
            sentry_dir=account_data.get("sentry_dir", "."),
        ),
        trade=TradeSettings(
            appid=int(trade_data.get("appid", 440)),
            contextid=int(trade_data.get("contextid", 2)),
            category=trade_data.get("category", DEFAULT_CATEGORY),
            confirm_delay=float(trade_data.get("confirm_delay", 1.5)),
            accept_timeout=float(trade_data.get("accept_timeout", 60.0)),
        ),
        logging=LoggingConfig(
            console_level=logging_data.get("console_level", "DEBUG"),
            file_level=logging_data.get("file_level", "INFO"),
            filename=logging_data.get("filename", "cratedump.log"),
        ),
        servers_file=data.get("servers_file", "servers.json"),
    )
