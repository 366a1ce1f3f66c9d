"""Logging setup: a Rich console handler on the ``glimpse`` logger."""

from __future__ import annotations

import logging

import litellm
from rich.console import Console
from rich.logging import RichHandler

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

_ROOT_LOGGER = "glimpse"


def configure_logging(level: int = logging.INFO, console: Console | None = None) -> logging.Logger:
    """Attach a RichHandler to the ``glimpse`` logger and set its level.

    Safe to call more than once: an existing RichHandler is reused and only
    the level is updated.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)

    handler = next((h for h in logger.handlers if isinstance(h, RichHandler)), None)
    if handler is None:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False
    handler.setLevel(level)
    return logger
