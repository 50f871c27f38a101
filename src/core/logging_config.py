"""Logging setup for the CLI.

User-facing progress is printed through a Rich `Console`; logging carries
diagnostics (every external command at DEBUG) and goes to stderr.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "laravel_fp"


def get_log_level(default: str = "WARNING") -> str:
    """Log level from the environment, upper-cased."""

    return os.getenv("LARAVEL_FP_LOG_LEVEL", default).upper()


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a single RichHandler to the package logger.

    Calling it twice replaces the handler instead of stacking a second one.
    """

    resolved = (level or get_log_level()).upper()
    numeric = logging.getLevelName(resolved)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
    return logger
