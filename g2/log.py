"""Logging setup for command-line use. Library code only creates loggers."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Attach a single stderr handler to the ``g2`` logger.

    Safe to call more than once; the handler is replaced, not duplicated.

    Args:
        level: Log level name or number.

    Returns:
        The ``g2`` logger.
    """
    root = logging.getLogger("g2")
    for handler in list(root.handlers):
        if getattr(handler, "_g2_cli", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._g2_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level if isinstance(level, int) else level.upper())
    return root
