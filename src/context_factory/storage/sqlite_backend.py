"""SQLite database context built from a connection string.

Recognised connection-string keys (case-insensitive):

* ``Data Source`` / ``DataSource`` / ``Filename`` -- database path, or
  ``:memory:``.  Relative paths resolve against the materializer's root.
* ``Mode`` -- ``ReadWriteCreate`` (default), ``ReadWrite``, ``ReadOnly`` or
  ``Memory``.
* ``Foreign Keys`` -- ``True`` (default) or ``False``.

File databases opened for writing use WAL mode.  All queries use
parameterized ``?`` placeholders.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from context_factory.connection_string import parse_connection_string, redact_connection_string

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

DRIVER_ERRORS: tuple[type[Exception], ...] = (sqlite3.Error,)

_SOURCE_KEYS = ("data source", "datasource", "filename")
_MODES = {"readwritecreate", "readwrite", "readonly", "memory"}
_TRUE = {"true", "yes", "1"}
_FALSE = {"false", "no", "0"}


def _flag(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Invalid boolean value {value!r} in connection string.")


class SQLiteContext:
    """SQLite-backed database context.

    Parameters
    ----------
    connection_string:
        ``Data Source=<path>;Mode=...;Foreign Keys=...``.
    root:
        Directory that relative ``Data Source`` paths resolve against.
        Defaults to the current working directory.
    """

    def __init__(self, connection_string: str, root: str | Path | None = None) -> None:
        parts = parse_connection_string(connection_string)
        source = next((parts[k] for k in _SOURCE_KEYS if k in parts), "")
        mode = parts.get("mode", "ReadWriteCreate").replace(" ", "").lower()
        if mode not in _MODES:
            raise ValueError(f"Unsupported SQLite mode {parts['mode']!r}.")
        if not source and mode != "memory":
            raise ValueError("SQLite connection string requires a 'Data Source'.")

        self._connection_string = connection_string
        if mode == "memory" or source == MEMORY:
            self.database = MEMORY
            self._conn = sqlite3.connect(MEMORY, check_same_thread=False)
        else:
            path = Path(source)
            if not path.is_absolute():
                path = Path(root or os.getcwd()) / path
            self.database = str(path)
            if mode == "readwritecreate":
                os.makedirs(path.parent, exist_ok=True)
                self._conn = sqlite3.connect(self.database, check_same_thread=False)
            else:
                uri_mode = "ro" if mode == "readonly" else "rw"
                self._conn = sqlite3.connect(
                    f"{path.as_uri()}?mode={uri_mode}", uri=True, check_same_thread=False
                )
            if mode != "readonly":
                self._conn.execute("PRAGMA journal_mode=WAL")

        foreign_keys = _flag(parts.get("foreign keys"), default=True)
        self._conn.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")
        self._conn.row_factory = sqlite3.Row
        self.read_only = mode == "readonly"
        logger.debug("Opened SQLite context %s", redact_connection_string(connection_string))

    @property
    def connection_string(self) -> str:
        return self._connection_string

    @contextmanager
    def _cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        cur = self._conn.cursor()
        try:
            yield cur
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            cur.close()

    def execute(self, sql: str, params: tuple = ()) -> int:
        """Execute a statement and return the affected row count."""
        with self._cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute raw SQL with ``?`` placeholders, returning list of dicts."""
        with self._cursor() as cur:
            cur.execute(sql, params)
            return [dict(row) for row in cur.fetchall()]

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()

    def __enter__(self) -> SQLiteContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class SQLiteMaterializer:
    """Materializer producing :class:`SQLiteContext` instances."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = root

    def create(self, connection_string: str) -> SQLiteContext:
        return SQLiteContext(connection_string, root=self.root)
