"""Logging setup for questgraph.

Library modules only ask for a child logger through ``get_logger``; the CLI
entry point is the one place that attaches a handler via ``setup_logging``.
"""
from __future__ import annotations

import logging
import sys

ROOT_LOGGER_NAME = "questgraph"
_CONSOLE_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def resolve_level(value: object, default: int = logging.WARNING) -> int:
    """Map a config level name to a logging level, falling back to ``default``."""
    if isinstance(value, str):
        return _LEVELS.get(value.strip().upper(), default)
    return default


def setup_logging(level: int = logging.WARNING) -> logging.Logger:
    """Attach a single stderr handler to the package logger."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    # Repeated calls must not stack handlers.
    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(handler)
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger or one of its children."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)
