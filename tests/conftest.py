"""Shared pytest fixtures for the context factory test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from context_factory import ContextFactory, FactorySettings


# ---------------------------------------------------------------------------
# Settings file fixtures
# ---------------------------------------------------------------------------


def connection_strings(value: str, entry: str = "(default)") -> dict[str, Any]:
    """Settings document holding a single connection string."""
    return {"ConnectionStrings": {entry: value}}


@pytest.fixture()
def write_settings(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a JSON (or raw text) settings file into ``tmp_path``."""

    def _write(name: str, content: Any) -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def base_settings(write_settings) -> Path:
    """``appsettings.json`` defining ``ConnectionStrings:(default) = Server=A``."""
    return write_settings("appsettings.json", connection_strings("Server=A"))


# ---------------------------------------------------------------------------
# Materializer fixtures
# ---------------------------------------------------------------------------


class RecordingMaterializer:
    """Materializer that records every connection string it receives."""

    def __init__(self) -> None:
        self.received: list[str] = []

    def create(self, connection_string: str) -> dict[str, str]:
        self.received.append(connection_string)
        return {"connection_string": connection_string}


@pytest.fixture()
def recorder() -> RecordingMaterializer:
    return RecordingMaterializer()


@pytest.fixture()
def make_factory(recorder, tmp_path):
    """Build a :class:`ContextFactory` with an injected, empty environment."""

    def _make(environ: dict[str, str] | None = None, **settings: Any) -> ContextFactory:
        return ContextFactory(
            recorder,
            settings=FactorySettings(**settings),
            environ=environ if environ is not None else {},
            base_directory=tmp_path,
        )

    return _make
