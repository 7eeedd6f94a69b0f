"""Logging setup for the CLI."""

from __future__ import annotations
import logging
from rich.console import Console
from rich.logging import RichHandler


LOGGER_NAME = "zotero_cli"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Send ``zotero_cli`` log records to stderr.

    Requests are logged at INFO, so they only show up with ``--verbose``.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    return logger


__all__ = ["LOGGER_NAME", "configure_logging"]
