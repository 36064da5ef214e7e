"""
Logging setup for bioresolve.

Library modules log through children of the "bioresolve" logger
(logging.getLogger(__name__)); this module attaches a rich handler once.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from bioresolve.config import settings


def setup_logger(level: str | None = None) -> logging.Logger:
    """Set up the package logger with a rich stderr handler."""
    logger = logging.getLogger("bioresolve")
    logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.WARNING))

    # Avoid adding duplicate handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


logger = setup_logger()
