"""
utils/logger.py
---------------
Logging setup for the repositories, the drills and db scripts.
Modules call `get_logger(__name__)`; the first call attaches one stdout
handler to the root logger at the level named by LOG_LEVEL.
"""

import logging
import sys

from config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_handler: logging.Handler | None = None


def resolve_level(name: str) -> int:
    """Map a level name such as 'DEBUG' to its number; unknown names give INFO."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _attach_handler() -> None:
    global _handler
    if _handler is not None:
        return
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.addHandler(_handler)
    root.setLevel(resolve_level(LOG_LEVEL))


def get_logger(name: str) -> logging.Logger:
    """Return the logger for `name`, attaching the stdout handler on first use."""
    _attach_handler()
    return logging.getLogger(name)
