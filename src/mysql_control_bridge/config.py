"""Environment loading: .env discovery and ${VAR} interpolation.

Precedence, highest first: variables already in the process environment
(for example those injected by the MCP client), ``.cursor/.env``, then the
project-root ``.env``. An explicit ``--env-file`` fills in whatever is still
unset.
"""

import logging
import os
import re
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from .constants import CURSOR_DIR_NAME, ENV_FILE_NAME, MAX_INTERPOLATION_PASSES

logger = logging.getLogger(__name__)

INTERPOLATION = re.compile(r"\$\{([^}]+)\}")


def find_project_root(start: Optional[Path] = None) -> tuple[Path, bool]:
    """Walk up from ``start`` to the first directory containing ``.cursor/``.

    Returns:
        (root, found) where root falls back to ``start`` when no
        ``.cursor`` directory exists above it
    """
    start = (start or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        if (directory / CURSOR_DIR_NAME).is_dir():
            return directory, True
    return start, False


def env_file_candidates(start: Optional[Path] = None) -> list[Path]:
    """.env files to load, lowest priority first."""
    root, found_cursor = find_project_root(start)
    candidates = [root / ENV_FILE_NAME]
    if found_cursor:
        candidates.append(root / CURSOR_DIR_NAME / ENV_FILE_NAME)
    return candidates


def _read_env_file(path: Path) -> dict[str, str]:
    values = dotenv_values(path, interpolate=False)
    return {key: value for key, value in values.items() if value is not None}


def load_env_files(
    base: Optional[Mapping[str, str]] = None,
    start: Optional[Path] = None,
    extra_files: tuple[Path, ...] = (),
) -> dict[str, str]:
    """Merge .env files under the base environment.

    Later project files override earlier ones, but nothing overrides a key
    present in ``base``. ``extra_files`` only fill keys still unset.

    Args:
        base: Starting environment (defaults to os.environ)
        start: Directory to search from (defaults to the working directory)
        extra_files: Explicit files given on the command line

    Returns:
        New merged environment mapping
    """
    base = dict(os.environ if base is None else base)
    layered: dict[str, str] = {}

    for path in env_file_candidates(start):
        if path.is_file():
            layered.update(_read_env_file(path))
            logger.info(f"Loaded environment file: {path}")

    merged = {**layered, **base}

    for path in extra_files:
        if not path.is_file():
            logger.warning(f"Environment file not found: {path}")
            continue
        for key, value in _read_env_file(path).items():
            merged.setdefault(key, value)
        logger.info(f"Loaded environment file: {path}")

    return merged


def interpolate_value(value: str, environ: Mapping[str, str]) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in one value.

    An unset or empty variable takes the default when one is given, and
    expands to the empty string otherwise.
    """

    def _replace(match: re.Match) -> str:
        name, sep, default = match.group(1).partition(":-")
        current = environ.get(name.strip())
        if current:
            return current
        if sep:
            return default
        return ""

    return INTERPOLATION.sub(_replace, value)


def resolve_env_variables(environ: Mapping[str, str]) -> dict[str, str]:
    """Resolve interpolation across the whole environment.

    Passes repeat until nothing changes, so references to values that are
    themselves interpolated resolve too. Cycles stop after
    MAX_INTERPOLATION_PASSES.
    """
    resolved = dict(environ)
    for _ in range(MAX_INTERPOLATION_PASSES):
        changed = False
        for key, value in resolved.items():
            if "${" not in value:
                continue
            new_value = interpolate_value(value, resolved)
            if new_value != value:
                resolved[key] = new_value
                changed = True
        if not changed:
            return resolved

    logger.warning("Interpolation pass limit reached while resolving environment variables")
    return resolved


def load_environment(
    base: Optional[Mapping[str, str]] = None,
    start: Optional[Path] = None,
    extra_files: tuple[Path, ...] = (),
) -> dict[str, str]:
    """Load .env files and resolve interpolation: the environment the registry reads."""
    return resolve_env_variables(load_env_files(base, start, extra_files))
