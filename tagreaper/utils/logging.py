"""Logging configuration.

Log records go to standard error through a Rich handler so that standard output
stays reserved for the JSON summary and diagnostic lines.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(message)s"


def setup_logging(
    level: Union[str, int] = "WARNING",
    verbose: bool = False,
    console: Optional[Console] = None,
) -> None:
    """Configure application-wide logging.

    Args:
        level: Logging level name or number (default: WARNING)
        verbose: Show module paths and local variables in tracebacks
        console: Rich console to log to (default: a new stderr console)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
