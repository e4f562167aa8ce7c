"""Configuration sub-package.

Provides environment detection and layered settings loading.

Quick usage::

    from context_factory.config import load_configuration

    cfg = load_configuration("/srv/app", [("appsettings.json", True)], os.environ)
    print(cfg.get_connection_string("(default)"))
"""

from __future__ import annotations

from context_factory.config.environment import (
    get_base_directory,
    get_environment_name,
)
from context_factory.config.loader import (
    flatten,
    load_configuration,
    load_environment_layer,
    load_file_layer,
    load_settings_file,
)

__all__ = [
    "flatten",
    "get_base_directory",
    "get_environment_name",
    "load_configuration",
    "load_environment_layer",
    "load_file_layer",
    "load_settings_file",
]
