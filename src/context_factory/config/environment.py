"""Environment detection utilities.

Provides helpers to determine the runtime environment name (``Development``,
``Production``, ...) and the base directory of the running application.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping

from context_factory.domain.models import KEY_DELIMITER


def get_environment_name(environ: Mapping[str, str], variable_name: str) -> str | None:
    """Return the environment name stored under *variable_name*.

    Most shells cannot export names containing ``:``, so a name such as
    ``Hosting:Environment`` is also looked up as ``Hosting__Environment``.

    Returns
    -------
    str | None
        The environment name, or ``None`` when unset or blank.
    """
    value = environ.get(variable_name)
    if value is None and KEY_DELIMITER in variable_name:
        value = environ.get(variable_name.replace(KEY_DELIMITER, "__"))
    if value is None or not value.strip():
        return None
    return value.strip()


def get_base_directory() -> Path:
    """Return the directory of the running application.

    This is the directory holding the ``__main__`` module's file.  Interactive
    sessions and embedded interpreters have no such file, so the current
    working directory is used instead.
    """
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent
    return Path(os.getcwd())
