"""Exception hierarchy for check-links."""

from __future__ import annotations

from pathlib import Path


class CheckLinksError(RuntimeError):
    """Base class for errors raised by check-links."""


class ConfigError(CheckLinksError):
    """Raised when the configuration file or overrides are invalid."""


class ExtractionError(CheckLinksError):
    """Raised when a single document cannot be searched for links."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class NoInputError(CheckLinksError):
    """Raised when a run finds no readable documentation files."""


__all__ = ["CheckLinksError", "ConfigError", "ExtractionError", "NoInputError"]
