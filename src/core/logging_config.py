"""Logging helpers.

Loggers hang under the `ninecut` namespace; the CLI decides the handler
(Rich) and the level, library code only asks for a logger.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_ROOT = "ninecut"


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(f"{_ROOT}.{name}")


def setup_logging(level: str = "WARNING", *, console: Console | None = None) -> None:
    """Attach a single RichHandler to the `ninecut` logger."""

    logger = logging.getLogger(_ROOT)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(
        RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
    )
