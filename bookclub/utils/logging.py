"""Logging for the ``bookclub`` package.

Every module logger is a child of the ``bookclub`` logger, which owns the
only handler. The level comes from `bookclub.config.log_level_name()` and
can be changed at runtime with `set_level` (the CLI's ``--log-level``).
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from bookclub import config as app_config

ROOT_LOGGER_NAME = "bookclub"
LOG_FORMAT = "[bookclub] %(asctime)s %(levelname)s %(name)s %(message)s"

_LOCK = threading.Lock()
_ROOT: Optional[logging.Logger] = None


def _level_for(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def _root_logger() -> logging.Logger:
    global _ROOT
    if _ROOT is not None:
        return _ROOT
    with _LOCK:
        if _ROOT is None:
            logger = logging.getLogger(ROOT_LOGGER_NAME)
            logger.setLevel(_level_for(app_config.log_level_name()))
            if not logger.handlers:
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter(LOG_FORMAT))
                logger.addHandler(handler)
            logger.propagate = False
            _ROOT = logger
        return _ROOT


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Logger ``bookclub.<name>``; names already under ``bookclub`` are kept."""
    root = _root_logger()
    if name == ROOT_LOGGER_NAME:
        return root
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_level(level_name: str) -> None:
    _root_logger().setLevel(_level_for(level_name))


__all__ = ["ROOT_LOGGER_NAME", "get_logger", "set_level"]
