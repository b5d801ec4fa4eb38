from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .paths import _work_dir

LOGGER_NAME = "spendboard"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 2 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_LOGGER: logging.Logger | None = None


def _log_file(log_dir: Path | None) -> Path:
    target = Path(log_dir) if log_dir is not None else _work_dir() / "logs"
    target.mkdir(parents=True, exist_ok=True)
    return target / "app.log"


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the ``spendboard`` logger, creating its handlers on first use.

    Records go to a rotating ``app.log`` under the work directory and to
    stderr; stdout stays reserved for the JSON the loaders emit. Module
    loggers (``spendboard.services...``) inherit both handlers.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            _log_file(log_dir),
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        ),
        logging.StreamHandler(sys.stderr),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    _LOGGER = logger
    return logger


def set_level(level_name: str) -> int:
    """Apply ``level_name`` (DEBUG/INFO/...) to the root and application loggers."""

    level = logging.getLevelName(level_name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")
    logging.getLogger().setLevel(level)
    get_logger().setLevel(level)
    return level
