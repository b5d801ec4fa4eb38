from __future__ import annotations

import logging
import socket
import sys
from pathlib import Path
from typing import Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

socket.setdefaulttimeout(10)

import spendboard.core.logger as core_logger
from spendboard.config import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep logs, caches and SPENDBOARD_* overrides out of the developer's machine."""

    monkeypatch.setattr(core_logger, "_work_dir", lambda: tmp_path / "work")
    monkeypatch.setattr(core_logger, "_LOGGER", None, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("SPENDBOARD_HOME", str(tmp_path))
    for env_name in ENV_OVERRIDES.values():
        monkeypatch.delenv(env_name, raising=False)

    yield

    logger = logging.getLogger("spendboard")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
