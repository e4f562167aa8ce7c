"""Storage package: ready-made materializers for common databases.

Exports the database contexts and a factory function to select the
appropriate materializer by name.
"""

from __future__ import annotations

from pathlib import Path

from context_factory.storage import postgres_client, sqlite_backend
from context_factory.storage.sqlite_backend import SQLiteContext, SQLiteMaterializer

__all__ = [
    "STORAGE_ERRORS",
    "SQLiteContext",
    "SQLiteMaterializer",
    "BACKENDS",
    "get_materializer",
]

BACKENDS = ("sqlite", "postgres")

# Failures raised while opening or using any backend (missing driver included).
STORAGE_ERRORS: tuple[type[Exception], ...] = (
    ImportError,
    *sqlite_backend.DRIVER_ERRORS,
    *postgres_client.DRIVER_ERRORS,
)


def get_materializer(
    backend: str = "sqlite", root: str | Path | None = None
) -> SQLiteMaterializer | object:
    """Return the materializer for *backend*.

    - ``"postgres"`` -- returns a :class:`PostgresMaterializer`.  Connecting
      requires ``psycopg`` to be installed.
    - ``"sqlite"`` -- returns a :class:`SQLiteMaterializer` resolving
      relative ``Data Source`` paths against *root*.

    Raises
    ------
    ValueError
        If *backend* is not one of :data:`BACKENDS`.
    """
    name = backend.lower()
    if name == "postgres":
        from context_factory.storage.postgres_client import PostgresMaterializer

        return PostgresMaterializer()
    if name == "sqlite":
        return SQLiteMaterializer(root=root)
    raise ValueError(f"Unknown backend: {backend}")
