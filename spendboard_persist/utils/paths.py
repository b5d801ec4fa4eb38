"""
RESPONSIBILITIES
- Locate the ~/Spendboard persistence root (cache files and logs).
- Create the requested subdirectories on demand.
PROCESS OVERVIEW
1. persist_root() expands a caller supplied root or falls back to ~/Spendboard.
2. ensure_dirs() creates the root plus each named subdirectory and maps name -> path.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

DEFAULT_ROOT_NAME = "Spendboard"
CACHE_SUBDIR = "cache"
LOGS_SUBDIR = "logs"


def persist_root(root: str | os.PathLike[str] | None = None) -> Path:
    base = Path(root) if root is not None else Path.home() / DEFAULT_ROOT_NAME
    return base.expanduser().resolve()


def ensure_dirs(
    root: str | os.PathLike[str] | None = None,
    names: Iterable[str] = (CACHE_SUBDIR, LOGS_SUBDIR),
) -> dict[str, Path]:
    """Create ``root`` and its ``names`` subdirectories; return them by name."""

    base = persist_root(root)
    base.mkdir(parents=True, exist_ok=True)
    created: dict[str, Path] = {}
    for name in names:
        created[name] = base / name
        created[name].mkdir(exist_ok=True)
    return created
