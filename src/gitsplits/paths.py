"""Path helpers for locating repo resources.

The package runs both as an editable install (`pip install -e .`) and from a
source checkout with `PYTHONPATH=src`. Runtime resources such as the event log
directory and `pyproject.toml` live outside the package tree, so this module
locates the repo root reliably.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_repo_root() -> Path:
    """Return the repository root (directory containing `pyproject.toml`).

    Falls back to the current working directory if a repo root cannot be found.
    """
    start = Path(__file__).resolve()
    for parent in (start, *start.parents):
        if (parent / "pyproject.toml").is_file():
            return parent
    return Path.cwd()


def resolve_runtime_path(value: str | Path) -> Path:
    """Resolve a configured path; relative paths are anchored at the repo root."""
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return get_repo_root() / path
