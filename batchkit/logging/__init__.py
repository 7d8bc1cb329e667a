"""Logging setup for batchkit.

Adds the ``DETAIL`` and ``TRACE`` levels batch jobs log at, and installs the
stdout/stderr handler pair used by the command line.
"""

from __future__ import annotations

import logging
import sys

from batchkit.constants import DETAIL, TRACE
from batchkit.logging.filters import StreamRoutingFilter
from batchkit.logging.formatters import EventFormatter

logging.addLevelName(DETAIL, "DETAIL")
logging.addLevelName(TRACE, "TRACE")

LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "detail": DETAIL,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def resolve_level(level: str | int) -> int:
    """Translate a level name such as ``"detail"`` into its number.

    Raises
    ------
    ValueError
        If the level name is unknown
    """
    if isinstance(level, int):
        return level
    try:
        return LEVELS[level.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown log level '{level}'. Must be one of: {', '.join(LEVELS)}"
        ) from None


def configure_logging(level: str | int = "info", fmt: str = DEFAULT_FORMAT) -> None:
    """Route batchkit logging to stdout and stderr.

    Parameters
    ----------
    level : str | int
        Root log level, by name or number
    fmt : str
        Log format for both handlers
    """
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(EventFormatter(fmt))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(EventFormatter(fmt))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(
        level=resolve_level(level),
        handlers=[stdout_handler, stderr_handler],
        force=True,
    )


__all__ = [
    "DETAIL",
    "TRACE",
    "EventFormatter",
    "StreamRoutingFilter",
    "configure_logging",
    "resolve_level",
]
