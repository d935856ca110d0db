"""Console logging setup.

Modules log through ``logging.getLogger(__name__)``; applications call
:func:`configure_logging` once to install a compact, coloured console
format on the root logger.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

ANSI_RESET = "\u001b[0m"
ANSI_BLUE = "\u001b[34m"
ANSI_GREEN = "\u001b[32m"


class ConsoleFormatter(logging.Formatter):
    """``[LEVEL] logger.name: message`` with optional ANSI colours."""

    def __init__(self, color: bool = True) -> None:
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if not self.color:
            return f"[{record.levelname}] {record.name}: {message}"
        return f"[{ANSI_BLUE}{record.levelname}{ANSI_RESET}] {ANSI_GREEN}{record.name}:{ANSI_RESET} {message}"


def configure_logging(level: Optional[Union[str, int]] = None, color: Optional[bool] = None) -> None:
    """Replace the root handlers with a single console handler.

    ``level`` defaults to the ``LOG_LEVEL`` environment variable
    (``INFO`` when unset).  Colours are used when stderr is a terminal
    unless ``color`` says otherwise.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = level.upper()
    if color is None:
        color = sys.stderr.isatty()
    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleFormatter(color=color))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def set_level(level: Union[str, int], prefix: str = "backtester") -> None:
    """Set ``level`` on every known logger whose name starts with ``prefix``."""
    if isinstance(level, str):
        level = level.upper()
    logging.getLogger(prefix).setLevel(level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(prefix):
            logging.getLogger(name).setLevel(level)
