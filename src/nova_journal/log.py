"""Logging setup for the nova CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers; the CLI
calls configure_logging() once to route them through rich.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_FORMAT = "%(name)s: %(message)s"


def configure_logging(debug: bool = False, console: Console | None = None) -> None:
    """Install a RichHandler on the ``nova_journal`` logger (idempotent)."""
    logger = logging.getLogger("nova_journal")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=debug,
        show_path=debug,
        rich_tracebacks=debug,
    )
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    logging.getLogger("LiteLLM").setLevel(logging.DEBUG if debug else logging.WARNING)
