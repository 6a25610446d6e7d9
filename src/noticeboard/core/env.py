"""
Environment + project-root helpers.

Firebase credentials (`FIREBASE_DATABASE_URL`, `FIREBASE_AUTH_TOKEN`, ...) and the
weather API key usually live in a repo-local `.env` file, while the CLI, uvicorn and
pytest may all start from different working directories. This module makes both
predictable:
- `get_project_root()`: the directory `.env` and relative paths are resolved against
- `load_dotenv_if_present()`: load `.env` once, never overriding the real environment
- `resolve_project_path()`: anchor relative paths like `.cache/noticeboard` to the root
- `env_flag()` / `env_list()`: parse boolean and comma-separated env values
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = (".env", ".git", "pyproject.toml")
_TRUTHY = {"1", "true", "yes", "y", "on"}


def _is_root(path: Path) -> bool:
    return any((path / marker).exists() for marker in _ROOT_MARKERS)


@lru_cache
def get_project_root() -> Path:
    """Return the project root (cached).

    Resolution order: `NOTICEBOARD_PROJECT_ROOT`, the parent of `NOTICEBOARD_ENV_FILE`,
    the nearest ancestor of the CWD holding a root marker, then the CWD itself.
    """
    override = os.getenv("NOTICEBOARD_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv("NOTICEBOARD_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    cwd = Path.cwd().resolve()
    return next((p for p in (cwd, *cwd.parents) if _is_root(p)), cwd)


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project's `.env` (or `NOTICEBOARD_ENV_FILE`) once; returns the path loaded."""
    explicit = os.getenv("NOTICEBOARD_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def env_list(name: str) -> list[str]:
    return [s.strip() for s in os.getenv(name, "").split(",") if s.strip()]
