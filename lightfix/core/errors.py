"""Domain-specific errors for lightfix."""

from __future__ import annotations

from pathlib import Path


class LightfixError(Exception):
    """Base error for lightfix."""


class FormatError(LightfixError):
    """Raised when plugin bytes are truncated or structurally malformed."""


class EncodeError(LightfixError):
    """Raised when a record cannot be re-serialized within the format's limits."""


class PluginIOError(LightfixError):
    """Raised when reading or writing a file fails."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ConfigLoadError(LightfixError):
    """Raised when a light config file cannot be read or parsed."""


class ConfigValidationError(LightfixError):
    """Raised when a light config does not conform to schema or semantics."""


class InstallError(LightfixError):
    """Raised when the generated plugin cannot be installed or enabled."""
