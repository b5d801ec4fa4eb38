"""
RESPONSIBILITIES
- Hand persistence modules a child of the core ``spendboard`` logger.
- Point the log file at <persist root>/logs when the core logger is first built.
PROCESS OVERVIEW
1. PeriodCache asks for get_logger("period_cache", root).
2. ensure_dirs() creates the logs directory under the persistence root.
3. The core logger is built (or reused) and its ``period_cache`` child returned.
4. child_logger() skips steps 2-3 for callers that must not touch the persistence root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from spendboard.core.logger import LOGGER_NAME, get_logger as core_get_logger

from .paths import LOGS_SUBDIR, ensure_dirs


def get_logger(name: str, root: Path | None = None) -> logging.Logger:
    logs_dir = ensure_dirs(root, (LOGS_SUBDIR,))[LOGS_SUBDIR]
    return core_get_logger(logs_dir).getChild(name)


def child_logger(name: str) -> logging.Logger:
    return logging.getLogger(LOGGER_NAME).getChild(name)
