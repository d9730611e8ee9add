"""
Environment + project-root helpers.

Problems this module solves:
- Developers keep local overrides (e.g. `GEOLIVE_LOG_LEVEL`) in a repo-local `.env` file.
- The CLI is run from different working directories, so relative seed-file paths
  need a stable anchor.

This module provides:
- `load_dotenv_if_present()`: one-shot `.env` loading (does not override existing env vars)
- `get_project_root()`: find the repo root (first ancestor holding `.env`, `.git` or `pyproject.toml`)
- `resolve_project_path()`: resolve relative paths against the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = (".env", ".git", "pyproject.toml")


def _find_root_above(start: Path) -> Path | None:
    for candidate in (start, *start.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return None


@lru_cache
def get_project_root() -> Path:
    """Return the best-guess project root directory (cached)."""
    override = os.getenv("GEOLIVE_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv("GEOLIVE_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    # CWD first; then the package location for installs outside the working tree.
    root = _find_root_above(Path.cwd().resolve()) or _find_root_above(Path(__file__).resolve().parent)
    return root or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once if present; returns the loaded env path (or None).

    Never overrides env vars already set in the process environment.
    """
    explicit = os.getenv("GEOLIVE_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
