"""Logging utilities for wikisync commands and services."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "wikisync"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the wikisync hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    level: str | None = None,
) -> logging.Logger:
    """Configure the wikisync logger with console output and optional file sink.

    ``verbose`` forces DEBUG. Otherwise ``level`` (a name such as ``"WARNING"``)
    is honoured, falling back to INFO for unknown names.
    """
    resolved = logging.DEBUG if verbose else _level_from_name(level)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(resolved)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(resolved)
    stream_handler.setFormatter(logging.Formatter("[wikisync] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(resolved)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def _level_from_name(name: str | None) -> int:
    if not name:
        return logging.INFO
    # Accept the short WARN spelling too.
    normalized = name.strip().upper()
    if normalized == "WARN":
        normalized = "WARNING"
    value = logging.getLevelName(normalized)
    return value if isinstance(value, int) else logging.INFO


__all__ = ["configure_logging", "get_logger"]
