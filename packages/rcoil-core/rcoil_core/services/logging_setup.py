"""
Console logging for rcoil runs.

Lines are prefixed with a timestamp and coloured by level: info blue,
debug magenta, warning yellow, error red.
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Optional, Union

import click

_LEVEL_COLORS = {
    logging.DEBUG: "magenta",
    logging.INFO: "blue",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class ConsoleFormatter(logging.Formatter):
    """Format records as ``[YYYY-MM-DD HH:MM:SS.ff]: message``."""

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created)
        return stamp.strftime("%Y-%m-%d %H:%M:%S.") + f"{stamp.microsecond // 10000:02d}"

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if self.color:
            message = click.style(message, fg=_LEVEL_COLORS.get(record.levelno))
        return f"[{self.formatTime(record)}]: {message}"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    color: bool = True,
    logger_name: str = "rcoil_core",
) -> logging.Logger:
    """
    Attach a console handler to the rcoil logger hierarchy.

    Calling it again replaces the previously installed handler.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in logger.handlers[:]:
        if getattr(handler, "_rcoil_console", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ConsoleFormatter(color=color))
    handler._rcoil_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
