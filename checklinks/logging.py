"""Logging setup for the check-links command line."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

_LOGGER_NAME = "checklinks"
_PREFIX = "[check-links]"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger below ``checklinks`` for the given component."""
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


class _ConsoleFormatter(logging.Formatter):
    """Prefix console lines; debug lines also name the emitting component."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if record.levelno <= logging.DEBUG:
            component = record.name.removeprefix(f"{_LOGGER_NAME}.")
            return f"{_PREFIX} DEBUG {component}: {message}"
        return f"{_PREFIX} {record.levelname} {message}"


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Send checklinks log records to stderr and, optionally, a log file.

    Reports go to stdout, so the console handler always writes to stderr
    unless another stream is given. ``quiet`` wins over ``verbose``.
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(level)
    console.setFormatter(_ConsoleFormatter())
    logger.addHandler(console)

    if log_file is not None:
        # The file sink keeps debug detail even when the console is quiet.
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(sink)

    return logger


__all__ = ["configure_logging", "get_logger"]
