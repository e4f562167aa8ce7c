"""Domain layer -- models, protocols, and errors.

Re-exports all public domain types for convenient access::

    from context_factory.domain import FactorySettings, ResolvedConfiguration
"""

from __future__ import annotations

from context_factory.domain.errors import (
    ConfigurationError,
    MalformedConfigurationError,
    MissingConnectionStringError,
    MissingRequiredFileError,
)
from context_factory.domain.models import (
    CONNECTION_STRINGS_SECTION,
    DEFAULT_BASE_FILE_NAME,
    DEFAULT_CONNECTION_STRING_ENTRY,
    DEFAULT_ENVIRONMENT_FILE_PATTERN,
    DEFAULT_ENVIRONMENT_VARIABLE_NAME,
    ConfigurationLayer,
    ContextFactoryOptions,
    FactorySettings,
    ResolvedConfiguration,
)
from context_factory.domain.protocols import (
    ConfigurationLoaderProtocol,
    MaterializerProtocol,
)

__all__ = [
    # Constants
    "CONNECTION_STRINGS_SECTION",
    "DEFAULT_BASE_FILE_NAME",
    "DEFAULT_CONNECTION_STRING_ENTRY",
    "DEFAULT_ENVIRONMENT_FILE_PATTERN",
    "DEFAULT_ENVIRONMENT_VARIABLE_NAME",
    # Models
    "ConfigurationLayer",
    "ContextFactoryOptions",
    "FactorySettings",
    "ResolvedConfiguration",
    # Errors
    "ConfigurationError",
    "MalformedConfigurationError",
    "MissingConnectionStringError",
    "MissingRequiredFileError",
    # Protocols
    "ConfigurationLoaderProtocol",
    "MaterializerProtocol",
]
