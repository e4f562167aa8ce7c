"""Domain models for layered connection-string resolution.

All models are frozen dataclasses to enforce immutability.  Configuration
keys are colon-delimited paths (``ConnectionStrings:(default)``) and are
compared case-insensitively, the way hierarchical application settings are
usually addressed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Mapping

KEY_DELIMITER = ":"
CONNECTION_STRINGS_SECTION = "ConnectionStrings"

DEFAULT_ENVIRONMENT_VARIABLE_NAME = "Hosting:Environment"
DEFAULT_BASE_FILE_NAME = "appsettings.json"
DEFAULT_ENVIRONMENT_FILE_PATTERN = "appsettings.{environment}.json"
DEFAULT_CONNECTION_STRING_ENTRY = "(default)"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _empty_mapping() -> Mapping[str, str]:
    """Return an empty read-only mapping."""
    return MappingProxyType({})


def normalize_key(key: str) -> str:
    """Return the case-insensitive lookup form of a configuration key."""
    return key.casefold()


def combine_key(*parts: str) -> str:
    """Join key segments with the configuration delimiter."""
    return KEY_DELIMITER.join(part for part in parts if part)


# ---------------------------------------------------------------------------
# Settings and options
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FactorySettings:
    """Naming conventions used while resolving a connection string.

    Attributes
    ----------
    environment_variable_name:
        Environment variable holding the runtime environment name.
    base_file_name:
        Mandatory, environment-agnostic settings file.
    environment_file_pattern:
        Either a ``str.format`` pattern with an ``{environment}`` field, or a
        callable mapping an environment name to a file name.
    connection_string_entry:
        Entry name inside the ``ConnectionStrings`` section.
    environment_variable_prefix:
        When non-empty, only environment variables starting with this prefix
        are applied, with the prefix removed.
    """

    environment_variable_name: str = DEFAULT_ENVIRONMENT_VARIABLE_NAME
    base_file_name: str = DEFAULT_BASE_FILE_NAME
    environment_file_pattern: str | Callable[[str], str] = DEFAULT_ENVIRONMENT_FILE_PATTERN
    connection_string_entry: str = DEFAULT_CONNECTION_STRING_ENTRY
    environment_variable_prefix: str = ""

    def environment_file_name(self, environment_name: str) -> str:
        """Return the overlay file name for *environment_name*."""
        if callable(self.environment_file_pattern):
            return self.environment_file_pattern(environment_name)
        return self.environment_file_pattern.format(environment=environment_name)


@dataclass(frozen=True)
class ContextFactoryOptions:
    """Information about the environment an application is running in.

    External tools (migrations, scaffolding) that run outside the normal
    application host use this to supply the content root and environment
    explicitly.
    """

    content_root_path: str | Path = "."
    environment_name: str | None = None


# ---------------------------------------------------------------------------
# Configuration layers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConfigurationLayer:
    """One flattened source of key/value configuration data.

    Attributes
    ----------
    source:
        Human readable origin, e.g. a file path or ``"environment"``.
    data:
        Flat mapping of colon-delimited keys to string values.
    """

    source: str
    data: Mapping[str, str] = field(default_factory=_empty_mapping)


@dataclass(frozen=True)
class ResolvedConfiguration:
    """The merged, read-only view over an ordered list of layers.

    Keys are stored in normalized (case-folded) form; :attr:`keys` keeps the
    spelling from the layer that last set each key.
    """

    data: Mapping[str, str] = field(default_factory=_empty_mapping)
    keys: Mapping[str, str] = field(default_factory=_empty_mapping)
    layers: tuple[str, ...] = ()

    # -- factory -----------------------------------------------------------

    @staticmethod
    def merge(layers: list[ConfigurationLayer] | tuple[ConfigurationLayer, ...]) -> ResolvedConfiguration:
        """Overlay *layers* in order; later layers win key by key."""
        merged: dict[str, str] = {}
        spelled: dict[str, str] = {}
        for layer in layers:
            for key, value in layer.data.items():
                norm = normalize_key(key)
                merged[norm] = value
                spelled[norm] = key
        return ResolvedConfiguration(
            data=MappingProxyType(merged),
            keys=MappingProxyType(spelled),
            layers=tuple(layer.source for layer in layers),
        )

    # -- typed accessors ---------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value by colon-delimited *key*, e.g. ``Logging:Level``."""
        return self.data.get(normalize_key(key), default)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self.data

    def section(self, name: str) -> dict[str, str]:
        """Return the direct children of section *name* (empty dict if missing).

        Only leaf values one level below *name* are returned, keyed by their
        original spelling.
        """
        prefix = normalize_key(name) + KEY_DELIMITER
        children: dict[str, str] = {}
        for norm, value in self.data.items():
            if not norm.startswith(prefix):
                continue
            child = self.keys[norm][len(prefix):]
            if KEY_DELIMITER not in child:
                children[child] = value
        return children

    def get_connection_string(self, name: str) -> str | None:
        """Shorthand for ``get("ConnectionStrings:<name>")``."""
        return self.get(combine_key(CONNECTION_STRINGS_SECTION, name))
