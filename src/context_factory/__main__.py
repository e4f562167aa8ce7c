"""Command-line entry point for resolving connection strings.

Intended for migration and scaffolding tools that run outside the normal
application host::

    python -m context_factory --base-path ./app --environment Production
    python -m context_factory --check --backend sqlite --debug
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from context_factory.config.environment import get_environment_name
from context_factory.connection_string import redact_connection_string
from context_factory.domain.errors import ConfigurationError
from context_factory.domain.models import (
    DEFAULT_BASE_FILE_NAME,
    DEFAULT_CONNECTION_STRING_ENTRY,
    DEFAULT_ENVIRONMENT_VARIABLE_NAME,
    FactorySettings,
)
from context_factory.factory import ContextFactory
from context_factory.storage import BACKENDS, STORAGE_ERRORS, get_materializer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="context_factory",
        description="Resolve a connection string from layered settings files.",
    )
    parser.add_argument(
        "--base-path",
        type=str,
        default=None,
        help="Directory holding the settings files (default: current directory).",
    )
    parser.add_argument(
        "--environment",
        type=str,
        default=None,
        help=f"Environment name (default: read from ${DEFAULT_ENVIRONMENT_VARIABLE_NAME}).",
    )
    parser.add_argument(
        "--entry",
        type=str,
        default=DEFAULT_CONNECTION_STRING_ENTRY,
        help=f"Connection string entry name (default: {DEFAULT_CONNECTION_STRING_ENTRY}).",
    )
    parser.add_argument(
        "--base-file",
        type=str,
        default=DEFAULT_BASE_FILE_NAME,
        help=f"Base settings file name (default: {DEFAULT_BASE_FILE_NAME}).",
    )
    parser.add_argument(
        "--env-prefix",
        type=str,
        default="",
        help="Only apply environment variables with this prefix.",
    )
    parser.add_argument(
        "--show-secret",
        action="store_true",
        default=False,
        help="Print the connection string without masking passwords.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Open (and close) a database context to verify the connection string.",
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default="sqlite",
        help="Backend used by --check (default: sqlite).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug mode with verbose logging.",
    )
    return parser


def _configure_logging(debug: bool) -> None:
    """Set up root logger.

    Parameters
    ----------
    debug:
        If True, set log level to DEBUG; otherwise WARNING.
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, resolve the connection string and print it."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.debug)

    settings = replace(
        FactorySettings(),
        base_file_name=args.base_file,
        connection_string_entry=args.entry,
        environment_variable_prefix=args.env_prefix,
    )
    base_dir = Path(args.base_path) if args.base_path else Path.cwd()
    materializer = get_materializer(args.backend, root=base_dir)
    factory = ContextFactory(materializer, settings=settings, base_directory=base_dir)
    base_path = factory.base_directory
    environment = args.environment
    if environment is None:
        environment = get_environment_name(factory.environ, settings.environment_variable_name)

    try:
        connection_string = factory.resolve_connection_string(base_path, environment)
        if args.check:
            with materializer.create(connection_string):
                logger.info("Opened %s context successfully", args.backend)
    except (ConfigurationError, ValueError, *STORAGE_ERRORS) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(connection_string if args.show_secret else redact_connection_string(connection_string))
    return 0


if __name__ == "__main__":
    sys.exit(main())
