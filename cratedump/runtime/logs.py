"""
Logging Setup
=============

Two sinks, like any long-running bot: a chatty console and a quieter,
timestamped log file.
"""

import logging
import sys
from typing import Optional

from .config import LoggingConfig

ROOT_LOGGER = "cratedump"
CONSOLE_FORMAT = "%(levelname)-7s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: Optional[LoggingConfig] = None, console: bool = True) -> logging.Logger:
    """
    Install the console and file handlers on the package logger.

    Calling it again replaces the handlers instead of stacking them.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(config.console_level.upper())
        stream.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(stream)

    if config.filename:
        file_handler = logging.FileHandler(config.filename)
        file_handler.setLevel(config.file_level.upper())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
