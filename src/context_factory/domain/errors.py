"""Error taxonomy for configuration resolution.

Every error raised while resolving a connection string derives from
:class:`ConfigurationError`.  Each subclass also derives from the closest
built-in exception so that callers catching ``FileNotFoundError`` or
``ValueError`` keep working.
"""

from __future__ import annotations

from pathlib import Path


class ConfigurationError(Exception):
    """Base class for all configuration resolution failures."""


class MissingRequiredFileError(ConfigurationError, FileNotFoundError):
    """A mandatory configuration file does not exist."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"The configuration file '{self.path}' was not found and is not optional.")


class MalformedConfigurationError(ConfigurationError, ValueError):
    """A configuration file exists but could not be parsed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to load configuration from '{self.path}': {reason}")


class MissingConnectionStringError(ConfigurationError, LookupError):
    """The requested connection string entry is absent or blank."""

    def __init__(self, entry_name: str) -> None:
        self.entry_name = entry_name
        super().__init__(f"Could not find a connection string named '{entry_name}'.")
