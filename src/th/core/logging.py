"""Logging setup for the th CLI."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "WARNING") -> None:
    """Route th diagnostics to stderr at the given level.

    Unknown level names fall back to WARNING. Only the ``th`` logger tree is
    configured so library loggers (httpx) stay quiet unless asked for.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING

    root = logging.getLogger("th")
    root.setLevel(numeric)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    if numeric <= logging.DEBUG:
        httpx_logger = logging.getLogger("httpx")
        httpx_logger.setLevel(logging.DEBUG)
        if not httpx_logger.handlers:
            httpx_logger.addHandler(root.handlers[0])
