"""Protocol interfaces for connection-string resolution.

Each protocol defines the contract that concrete implementations must satisfy.
Using :class:`typing.Protocol` enables structural subtyping -- implementations
do not need to explicitly inherit from these classes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Protocol, Sequence, TypeVar, runtime_checkable

from context_factory.domain.models import ResolvedConfiguration

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class MaterializerProtocol(Protocol[T_co]):
    """Turn a validated connection string into a usable domain object."""

    def create(self, connection_string: str) -> T_co:
        """Build the domain object for *connection_string*.

        Parameters
        ----------
        connection_string:
            A non-empty, non-blank connection string.

        Returns
        -------
        T
            A fully constructed object, e.g. a database context.
        """
        ...


@runtime_checkable
class ConfigurationLoaderProtocol(Protocol):
    """Read and merge configuration files plus environment variables."""

    def __call__(
        self,
        base_path: str | Path,
        files: Sequence[tuple[str, bool]],
        environ: Mapping[str, str] | None = None,
        env_prefix: str = "",
    ) -> ResolvedConfiguration:
        """Load *files* from *base_path* in order, then apply *environ*.

        Parameters
        ----------
        base_path:
            Directory the file names are relative to.
        files:
            ``(file name, required)`` pairs in precedence order.
        environ:
            Environment variables applied last; ``None`` skips the layer.
        env_prefix:
            Only variables starting with this prefix are applied.

        Raises
        ------
        MissingRequiredFileError
            If a required file is absent.
        MalformedConfigurationError
            If any present file cannot be parsed.
        """
        ...
