"""Connection-string parsing and redaction.

Handles the ``Key=Value;Key2=Value2`` form used in settings files.  Values
may be quoted with single or double quotes (a doubled quote inside a quoted
value is a literal quote), and ``==`` inside a key stands for a literal
``=``.  URL-style strings (``postgresql://user:pw@host/db``) are recognised
by :func:`is_url` and handled by :func:`redact_connection_string` only.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

REDACTED = "***"

_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")

_SECRET_KEYS = frozenset({
    "password", "pwd", "user password", "secret", "client secret",
    "token", "access token", "accesstoken", "account key", "accountkey",
    "sharedaccesskey",
})


def _is_secret(key: str) -> bool:
    return key.lower() in _SECRET_KEYS


def _read_value(text: str, pos: int) -> tuple[str, int]:
    """Read a value starting at *pos*; return it and the index after it."""
    n = len(text)
    while pos < n and text[pos].isspace():
        pos += 1
    if pos < n and text[pos] in "'\"":
        quote = text[pos]
        pos += 1
        chars: list[str] = []
        while True:
            if pos >= n:
                raise ValueError("Unterminated quoted value in connection string.")
            ch = text[pos]
            if ch == quote:
                if pos + 1 < n and text[pos + 1] == quote:
                    chars.append(quote)
                    pos += 2
                    continue
                pos += 1
                break
            chars.append(ch)
            pos += 1
        while pos < n and text[pos].isspace():
            pos += 1
        if pos < n and text[pos] != ";":
            raise ValueError(
                f"Unexpected character {text[pos]!r} after quoted value at position {pos}."
            )
        return "".join(chars), pos + 1

    end = text.find(";", pos)
    if end == -1:
        end = n
    return text[pos:end].strip(), end + 1


def _read_key(text: str, pos: int) -> tuple[str, int]:
    """Read a key up to an unescaped ``=``; return it and the index after ``=``."""
    n = len(text)
    chars: list[str] = []
    while pos < n:
        ch = text[pos]
        if ch == "=":
            if pos + 1 < n and text[pos + 1] == "=":
                chars.append("=")
                pos += 2
                continue
            return "".join(chars).strip(), pos + 1
        if ch == ";":
            break
        chars.append(ch)
        pos += 1
    raise ValueError(f"Connection string segment {''.join(chars).strip()!r} has no '='.")


def parse_connection_string(connection_string: str) -> dict[str, str]:
    """Parse ``Key=Value;...`` into an ordered dict with lower-cased keys.

    Empty segments are ignored and a repeated key keeps its last value.

    Raises
    ------
    ValueError
        If a segment has no ``=``, a key is empty, or a quote is unterminated.

    Examples
    --------
    >>> parse_connection_string("Server=db;Password='a;b'")
    {'server': 'db', 'password': 'a;b'}
    """
    result: dict[str, str] = {}
    for key, value in _parse_pairs(connection_string):
        result[key.lower()] = value
    return result


def _parse_pairs(connection_string: str) -> list[tuple[str, str]]:
    """Parse into ``(key, value)`` pairs, keeping each key's original spelling."""
    pairs: list[tuple[str, str]] = []
    pos = 0
    n = len(connection_string)
    while pos < n:
        if connection_string[pos] == ";" or connection_string[pos].isspace():
            pos += 1
            continue
        key, pos = _read_key(connection_string, pos)
        if not key:
            raise ValueError("Connection string contains an empty key.")
        value, pos = _read_value(connection_string, pos)
        pairs.append((key, value))
    return pairs


def _quote(value: str) -> str:
    if not value or value != value.strip() or any(c in value for c in ";'\""):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_connection_string(parts: dict[str, str]) -> str:
    """Inverse of :func:`parse_connection_string` (keys keep their given case)."""
    return ";".join(f"{key.replace('=', '==')}={_quote(value)}" for key, value in parts.items())


def is_url(connection_string: str) -> bool:
    """Return True for ``scheme://...`` strings (e.g. ``postgresql://db/main``)."""
    return _URL_SCHEME.match(connection_string) is not None


def _redact_url(url: str) -> str:
    parts = urlsplit(url)
    netloc = parts.netloc
    if parts.password is not None:
        host = parts.hostname or ""
        if parts.port is not None:
            host = f"{host}:{parts.port}"
        netloc = f"{parts.username or ''}:{REDACTED}@{host}"
    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        query = urlencode(
            [(key, REDACTED if _is_secret(key) else value) for key, value in pairs],
            safe="*",
        )
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def redact_connection_string(connection_string: str) -> str:
    """Mask secret values (passwords, tokens, keys) for display and logging.

    URL-style strings (``scheme://...``) have the password in their network
    location and any secret query parameters masked.  Keys keep the
    spelling they were given.  Strings that cannot be parsed are fully
    masked rather than echoed.
    """
    if is_url(connection_string):
        return _redact_url(connection_string)

    try:
        pairs = _parse_pairs(connection_string)
    except ValueError:
        return REDACTED
    masked: dict[str, tuple[str, str]] = {}
    for key, value in pairs:
        masked[key.lower()] = (key, REDACTED if _is_secret(key) else value)
    return format_connection_string(dict(masked.values()))
