"""Layered context factory.

Resolves a named connection string from a base settings file, an optional
environment-specific settings file and environment variables, then hands it
to a caller-supplied materializer that builds the actual database context.

Quick usage::

    from context_factory import ContextFactory
    from context_factory.storage import SQLiteMaterializer

    ctx = ContextFactory(SQLiteMaterializer()).create()
"""

from __future__ import annotations

from context_factory.domain import (
    ConfigurationError,
    ContextFactoryOptions,
    FactorySettings,
    MalformedConfigurationError,
    MaterializerProtocol,
    MissingConnectionStringError,
    MissingRequiredFileError,
    ResolvedConfiguration,
)
from context_factory.factory import ContextFactory

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ContextFactory",
    "ContextFactoryOptions",
    "FactorySettings",
    "MalformedConfigurationError",
    "MaterializerProtocol",
    "MissingConnectionStringError",
    "MissingRequiredFileError",
    "ResolvedConfiguration",
]
