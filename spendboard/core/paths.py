from __future__ import annotations

import os
import sys
from pathlib import Path

HOME_ENV = "SPENDBOARD_HOME"


def _is_frozen() -> bool:
    return bool(getattr(sys, "frozen", False)) and hasattr(sys, "_MEIPASS")


def _runtime_base() -> Path:
    """Directory holding the runtime ``spendboard/work`` tree.

    ``$SPENDBOARD_HOME`` wins; a frozen build writes next to its executable
    and a source checkout writes into the repository root.
    """
    override = os.getenv(HOME_ENV)
    if override:
        return Path(override).expanduser()
    if _is_frozen():
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]


def _work_dir() -> Path:
    return _runtime_base() / "spendboard" / "work"
