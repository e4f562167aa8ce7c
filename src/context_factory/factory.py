"""Context factory: layered connection-string lookup plus materialization.

A :class:`ContextFactory` finds a named connection string by reading a base
settings file, overlaying an environment-specific settings file, then
overlaying environment variables.  The resolved string is handed to a
caller-supplied materializer which builds the actual domain object, e.g. a
database context.

Example
-------
>>> factory = ContextFactory(SQLiteMaterializer())          # doctest: +SKIP
>>> ctx = factory.create_from_options(                       # doctest: +SKIP
...     ContextFactoryOptions("/srv/app", "Production"))
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Generic, Mapping, TypeVar

from context_factory.config.environment import get_base_directory, get_environment_name
from context_factory.config.loader import load_configuration
from context_factory.domain.errors import MissingConnectionStringError
from context_factory.domain.models import ContextFactoryOptions, FactorySettings
from context_factory.domain.protocols import (
    ConfigurationLoaderProtocol,
    MaterializerProtocol,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _CallableMaterializer(Generic[T]):
    """Adapt a plain ``str -> T`` callable to :class:`MaterializerProtocol`."""

    def __init__(self, func: Callable[[str], T]) -> None:
        self._func = func

    def create(self, connection_string: str) -> T:
        return self._func(connection_string)


class ContextFactory(Generic[T]):
    """Resolve a connection string from layered configuration and materialize it.

    Parameters
    ----------
    materializer:
        Object implementing :class:`MaterializerProtocol`, or a plain callable
        taking the connection string.
    settings:
        Naming conventions (environment variable, file names, entry name).
    environ:
        Environment variable store.  Defaults to :data:`os.environ`, read at
        call time.
    base_directory:
        Directory used by :meth:`create`.  Defaults to the directory of the
        running application.
    loader:
        Configuration loading collaborator; defaults to
        :func:`~context_factory.config.loader.load_configuration`.
    """

    def __init__(
        self,
        materializer: MaterializerProtocol[T] | Callable[[str], T],
        settings: FactorySettings | None = None,
        environ: Mapping[str, str] | None = None,
        base_directory: str | Path | None = None,
        loader: ConfigurationLoaderProtocol | None = None,
    ) -> None:
        if isinstance(materializer, type) and hasattr(materializer, "create"):
            raise TypeError(
                f"materializer must be an instance, not the class {materializer.__name__}; "
                f"pass {materializer.__name__}() instead"
            )
        if isinstance(materializer, MaterializerProtocol):
            self._materializer: MaterializerProtocol[T] = materializer
        elif callable(materializer):
            self._materializer = _CallableMaterializer(materializer)
        else:
            raise TypeError(
                "materializer must implement create(connection_string) or be callable, "
                f"got {type(materializer).__name__}"
            )
        self.settings = settings or FactorySettings()
        self._environ = environ
        self._base_directory = base_directory
        self._loader: ConfigurationLoaderProtocol = loader or load_configuration

    # -- collaborators -----------------------------------------------------

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    @property
    def base_directory(self) -> Path:
        if self._base_directory is None:
            return get_base_directory()
        return Path(self._base_directory)

    # -- public API --------------------------------------------------------

    def create(self) -> T:
        """Create the object using the process environment and base directory."""
        environment_name = get_environment_name(
            self.environ, self.settings.environment_variable_name
        )
        return self.resolve_and_create(self.base_directory, environment_name)

    def create_from_options(self, options: ContextFactoryOptions) -> T:
        """Create the object for an explicit content root and environment."""
        return self.resolve_and_create(options.content_root_path, options.environment_name)

    def resolve_connection_string(
        self, base_path: str | Path, environment_name: str | None
    ) -> str:
        """Resolve the configured connection string without materializing it.

        Raises
        ------
        MissingRequiredFileError
            If the base settings file does not exist.
        MalformedConfigurationError
            If any present settings file cannot be parsed.
        MissingConnectionStringError
            If the entry is missing, empty or whitespace only.
        """
        files: list[tuple[str, bool]] = [(self.settings.base_file_name, True)]
        if environment_name:
            files.append((self.settings.environment_file_name(environment_name), False))

        config = self._loader(
            base_path,
            files,
            self.environ,
            self.settings.environment_variable_prefix,
        )

        entry = self.settings.connection_string_entry
        connection_string = config.get_connection_string(entry)
        if connection_string is None or not connection_string.strip():
            raise MissingConnectionStringError(entry)

        logger.info(
            "Resolved connection string '%s' (environment=%s, layers=%d)",
            entry, environment_name or "<none>", len(config.layers),
        )
        return connection_string

    def resolve_and_create(self, base_path: str | Path, environment_name: str | None) -> T:
        """Resolve the connection string and hand it to the materializer."""
        connection_string = self.resolve_connection_string(base_path, environment_name)
        return self._materializer.create(connection_string)
