"""Logging configuration for command-line use."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Handler installed by configure_logging; reused on later calls
_handler: logging.Handler | None = None


def configure_logging(level: str | int = "WARNING") -> logging.Handler:
    """Attach a single stream handler to the culturevo logger tree.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Returns:
        The stream handler, the same one on every call
    """
    global _handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    root = logging.getLogger("culturevo")
    root.setLevel(level)
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    if _handler not in root.handlers:
        root.addHandler(_handler)
    return _handler
