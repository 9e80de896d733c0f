# roomrelay/core/logging.py

import logging
import os
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# third-party loggers pinned to a level regardless of LOG_LEVEL
PINNED_LEVELS = {
    "websockets": logging.WARNING,
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.WARNING,
}


def _resolve_level(level_name: str | None) -> int:
    name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(level_name: str | None = None) -> None:
    """
    Route relay logs (room lifecycle, broadcasts, evictions) to stdout.

    ``level_name`` wins over ``LOG_LEVEL``; unknown names fall back to INFO.
    Under ``uvicorn`` the root logger already has handlers, and only its
    level is changed.
    """
    level = _resolve_level(level_name)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    for name, pinned in PINNED_LEVELS.items():
        logging.getLogger(name).setLevel(pinned)


def get_logger(name: str | None = None) -> logging.Logger:
    """Module logger for the relay, e.g. ``get_logger(__name__)`` in main."""
    return logging.getLogger(name)
