"""Version lookup for the health endpoint and `gitsplits --version`."""

from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as _dist_version
from pathlib import Path

import tomllib

from gitsplits.paths import get_repo_root

UNKNOWN_VERSION = "0.0.0"


def pyproject_version(pyproject: Path) -> str:
    """Read `[project].version`; unreadable or missing files give UNKNOWN_VERSION."""
    try:
        with pyproject.open("rb") as f:
            project = tomllib.load(f).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return UNKNOWN_VERSION
    return str(project.get("version", UNKNOWN_VERSION))


@lru_cache(maxsize=None)
def get_app_version(package_name: str = "gitsplits") -> str:
    # Source checkouts run via PYTHONPATH have no dist metadata.
    try:
        return _dist_version(package_name)
    except PackageNotFoundError:
        return pyproject_version(get_repo_root() / "pyproject.toml")
