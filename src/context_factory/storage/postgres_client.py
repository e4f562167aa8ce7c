"""PostgreSQL database context built from a connection string.

Same interface as :class:`SQLiteContext` but backed by PostgreSQL.  Accepts
``postgresql://`` URLs unchanged, and ``Key=Value;...`` strings whose keys
are mapped to libpq keywords (``Server`` -> ``host``, ``Database`` ->
``dbname``, ``User Id`` -> ``user``, ...).  Requires ``psycopg`` (psycopg3);
if unavailable, instantiation raises a clear :class:`ImportError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generator

from context_factory.connection_string import (
    is_url,
    parse_connection_string,
    redact_connection_string,
)

try:
    import psycopg
    from psycopg.conninfo import make_conninfo
    from psycopg.rows import dict_row
    _HAS_PSYCOPG = True
    DRIVER_ERRORS: tuple[type[Exception], ...] = (psycopg.Error,)
except ImportError:
    _HAS_PSYCOPG = False
    DRIVER_ERRORS = ()

logger = logging.getLogger(__name__)

_KEYWORDS: dict[str, str] = {
    "server": "host",
    "host": "host",
    "data source": "host",
    "port": "port",
    "database": "dbname",
    "initial catalog": "dbname",
    "dbname": "dbname",
    "user id": "user",
    "userid": "user",
    "uid": "user",
    "user": "user",
    "username": "user",
    "user name": "user",
    "password": "password",
    "pwd": "password",
    "timeout": "connect_timeout",
    "connect timeout": "connect_timeout",
    "ssl mode": "sslmode",
    "sslmode": "sslmode",
    "application name": "application_name",
    "search path": "options",
}

# Npgsql/ADO.NET client-side settings with no libpq equivalent.
_CLIENT_ONLY_KEYS = frozenset({
    "pooling", "minimum pool size", "min pool size", "maximum pool size",
    "max pool size", "connection idle lifetime", "connection pruning interval",
    "connection lifetime", "include error detail", "trust server certificate",
    "command timeout", "internal command timeout", "multiplexing", "enlist",
    "no reset on close", "max auto prepare", "auto prepare min usages",
    "server compatibility mode", "log parameters", "persist security info",
    "integrated security", "read buffer size", "write buffer size",
    "keepalive", "tcp keepalive", "load table composites", "include realm",
})


def _require_psycopg() -> None:
    if not _HAS_PSYCOPG:
        raise ImportError(
            "psycopg (psycopg3) is required for PostgreSQL support. "
            "Install it with: pip install 'psycopg[binary]'"
        )


def build_conninfo(connection_string: str) -> str:
    """Translate *connection_string* into a libpq conninfo string.

    Client-side pool and driver settings (``Pooling``, ``Command Timeout``,
    ...) are dropped.  Other unknown keys are passed through with spaces
    replaced by underscores, so native libpq keywords
    (``target_session_attrs``, ...) keep working.

    Raises
    ------
    ValueError
        If the string cannot be parsed or libpq rejects a keyword.
    """
    _require_psycopg()
    if is_url(connection_string):
        return connection_string

    params: dict[str, Any] = {}
    for key, value in parse_connection_string(connection_string).items():
        if key in _CLIENT_ONLY_KEYS:
            logger.debug("Ignoring client-side connection setting %r", key)
            continue
        keyword = _KEYWORDS.get(key, key.replace(" ", "_"))
        if keyword == "sslmode":
            value = value.lower()
        elif keyword == "options":
            value = f"-c search_path={value}"
        params[keyword] = value
    try:
        return make_conninfo(**params)
    except psycopg.ProgrammingError as exc:
        raise ValueError(f"Invalid PostgreSQL connection string: {exc}") from exc


class PostgresContext:
    """PostgreSQL-backed database context.

    Requires ``psycopg`` (psycopg 3).  Raises :class:`ImportError` with
    installation instructions if the library is missing.
    """

    def __init__(self, connection_string: str) -> None:
        _require_psycopg()
        self._connection_string = connection_string
        self._conn = psycopg.connect(build_conninfo(connection_string), row_factory=dict_row)
        self._conn.autocommit = False
        logger.debug("Opened PostgreSQL context %s", redact_connection_string(connection_string))

    @property
    def connection_string(self) -> str:
        return self._connection_string

    @contextmanager
    def _cursor(self) -> Generator[Any, None, None]:
        """Yield a cursor; commit on success, rollback on failure."""
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
        """Execute a statement with ``%s`` placeholders; return affected rows."""
        with self._cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount

    def query(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute raw SQL with ``%s`` placeholders, returning list of dicts."""
        with self._cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        return list(rows)

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()

    def __enter__(self) -> PostgresContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class PostgresMaterializer:
    """Materializer producing :class:`PostgresContext` instances."""

    def create(self, connection_string: str) -> PostgresContext:
        return PostgresContext(connection_string)
