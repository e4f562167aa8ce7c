"""Layered configuration loader.

Reads settings files (JSON or YAML) relative to a base directory, flattens
them to colon-delimited keys, and overlays process environment variables on
top.  Loading order is the order of the ``files`` argument followed by the
environment, so later sources override earlier ones key by key.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Sequence

import yaml

from context_factory.domain.errors import (
    MalformedConfigurationError,
    MissingRequiredFileError,
)
from context_factory.domain.models import (
    CONNECTION_STRINGS_SECTION,
    KEY_DELIMITER,
    ConfigurationLayer,
    ResolvedConfiguration,
    combine_key,
    normalize_key,
)

logger = logging.getLogger(__name__)

ENVIRONMENT_SOURCE = "environment"

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})

# Connection-string variables set by hosting platforms, with their provider.
_CONNECTION_STRING_PREFIXES: tuple[tuple[str, str | None], ...] = (
    ("MYSQLCONNSTR_", "MySql.Data.MySqlClient"),
    ("SQLAZURECONNSTR_", "System.Data.SqlClient"),
    ("SQLCONNSTR_", "System.Data.SqlClient"),
    ("CUSTOMCONNSTR_", None),
)
_PROVIDER_NAME_SUFFIX = "_ProviderName"


# ---------------------------------------------------------------------------
# File parsing
# ---------------------------------------------------------------------------

def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    """``object_pairs_hook`` refusing keys that differ only by case."""
    result: dict[str, Any] = {}
    seen: set[str] = set()
    for key, value in pairs:
        norm = normalize_key(key)
        if norm in seen:
            raise ValueError(f"A duplicate key '{key}' was found.")
        seen.add(norm)
        result[key] = value
    return result


def load_settings_file(path: str | Path) -> dict[str, Any]:
    """Parse a JSON or YAML settings file into a nested dictionary.

    Parameters
    ----------
    path:
        File to read.  ``.yaml``/``.yml`` files are parsed with PyYAML; any
        other suffix is parsed as JSON.

    Returns
    -------
    dict[str, Any]
        The parsed document.  An empty YAML document yields ``{}``.

    Raises
    ------
    MissingRequiredFileError
        If *path* does not exist.
    MalformedConfigurationError
        If the file cannot be parsed or its root is not a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise MissingRequiredFileError(path)

    try:
        with open(path, "r", encoding="utf-8-sig") as fh:
            if path.suffix.lower() in _YAML_SUFFIXES:
                raw = yaml.safe_load(fh) or {}
            else:
                raw = json.load(fh, object_pairs_hook=_reject_duplicate_keys)
    except (json.JSONDecodeError, yaml.YAMLError, ValueError) as exc:
        raise MalformedConfigurationError(path, str(exc)) from exc

    if not isinstance(raw, dict):
        raise MalformedConfigurationError(
            path, f"top-level element must be an object, got {type(raw).__name__}"
        )
    return raw


def _stringify(value: Any) -> str:
    """Render a scalar the way it appears in flattened configuration."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(data: Mapping[str, Any] | list[Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings and lists into colon-delimited keys.

    ``{"a": {"b": [1, 2]}}`` becomes ``{"a:b:0": "1", "a:b:1": "2"}``.
    """
    items = data.items() if isinstance(data, Mapping) else enumerate(data)
    flat: dict[str, str] = {}
    for key, value in items:
        path = combine_key(prefix, str(key))
        if isinstance(value, (Mapping, list)):
            flat.update(flatten(value, path))
        else:
            flat[path] = _stringify(value)
    return flat


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------

def load_file_layer(
    base_path: str | Path, file_name: str, required: bool = True
) -> ConfigurationLayer | None:
    """Load *file_name* under *base_path* as a flat layer.

    Returns ``None`` when the file is optional and absent.  A present but
    malformed file is an error whether or not it is required.
    """
    path = Path(base_path) / file_name
    if not path.is_file() and not required:
        logger.debug("Optional configuration file %s not found; skipping", path)
        return None

    data = flatten(load_settings_file(path))
    logger.debug("Loaded %d configuration keys from %s", len(data), path)
    return ConfigurationLayer(source=str(path), data=MappingProxyType(data))


def _normalize_variable(name: str) -> str:
    return name.replace("__", KEY_DELIMITER)


def _connection_string_keys(name: str) -> tuple[str, str | None] | None:
    """Map a platform connection-string variable to its configuration key."""
    upper = name.upper()
    for prefix, provider in _CONNECTION_STRING_PREFIXES:
        if upper.startswith(prefix):
            entry = _normalize_variable(name[len(prefix):])
            return combine_key(CONNECTION_STRINGS_SECTION, entry), provider
    return None


def load_environment_layer(environ: Mapping[str, str], prefix: str = "") -> ConfigurationLayer:
    """Translate environment variables into a flat configuration layer.

    ``__`` in variable names is treated as the section delimiter, so
    ``ConnectionStrings__Main`` maps to ``ConnectionStrings:Main``.
    Variables named ``SQLCONNSTR_<name>``, ``SQLAZURECONNSTR_<name>``,
    ``MYSQLCONNSTR_<name>`` and ``CUSTOMCONNSTR_<name>`` map to
    ``ConnectionStrings:<name>`` and, where the provider is known, also set
    ``ConnectionStrings:<name>_ProviderName``.

    Parameters
    ----------
    environ:
        Variable store, typically :data:`os.environ`.
    prefix:
        When non-empty, only keys starting with *prefix* (case-insensitive,
        after ``__`` normalization) are kept, with the prefix removed.
    """
    norm_prefix = normalize_key(_normalize_variable(prefix))
    data: dict[str, str] = {}

    def _add(key: str, value: str) -> None:
        if norm_prefix:
            if not normalize_key(key).startswith(norm_prefix):
                return
            key = key[len(norm_prefix):]
        if key:
            data[key] = value

    for name, value in environ.items():
        matched = _connection_string_keys(name)
        if matched is None:
            _add(_normalize_variable(name), value)
            continue
        key, provider = matched
        _add(key, value)
        if provider is not None:
            _add(key + _PROVIDER_NAME_SUFFIX, provider)

    logger.debug("Loaded %d configuration keys from the environment", len(data))
    return ConfigurationLayer(source=ENVIRONMENT_SOURCE, data=MappingProxyType(data))


def load_configuration(
    base_path: str | Path,
    files: Sequence[tuple[str, bool]],
    environ: Mapping[str, str] | None = None,
    env_prefix: str = "",
) -> ResolvedConfiguration:
    """Load settings files and environment variables into one configuration.

    Loading order:
    1. each ``(file name, required)`` entry of *files*, relative to *base_path*
    2. *environ*, if given (highest precedence)

    Returns
    -------
    ResolvedConfiguration
        The merged, read-only configuration.

    Raises
    ------
    MissingRequiredFileError
        If a required file does not exist.
    MalformedConfigurationError
        If any existing file cannot be parsed.
    """
    layers: list[ConfigurationLayer] = []
    for file_name, required in files:
        layer = load_file_layer(base_path, file_name, required)
        if layer is not None:
            layers.append(layer)

    if environ is not None:
        layers.append(load_environment_layer(environ, env_prefix))

    return ResolvedConfiguration.merge(layers)
