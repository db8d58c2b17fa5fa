"""Logging setup for xgit."""

import logging
import os
import sys
from datetime import datetime
from typing import Optional

from colorama import Fore, Style

ROOT_LOGGER = 'xgit'


class ConsoleFormatter(logging.Formatter):
    """Human-readable, colored console formatter."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        line = f"{color}{timestamp} {record.levelname:8s}{Style.RESET_ALL} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the xgit namespace.

    Args:
        name: Module name (``__name__``); prefixed with 'xgit.' if needed

    Returns:
        logging.Logger
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + '.'):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(verbose: bool = False, level: Optional[str] = None) -> None:
    """
    Install the console handler on the xgit logger.

    Level precedence: explicit ``level``, then ``XGIT_LOG_LEVEL``, then
    DEBUG when verbose, else WARNING so normal command output stays clean.

    Args:
        verbose: Enable debug logging
        level: Level name override ('debug', 'info', ...)
    """
    level = level or os.environ.get('XGIT_LOG_LEVEL')
    if level:
        log_level = getattr(logging, level.upper(), logging.WARNING)
    else:
        log_level = logging.DEBUG if verbose else logging.WARNING

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(log_level)
    root.handlers = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(ConsoleFormatter())
    root.addHandler(handler)
