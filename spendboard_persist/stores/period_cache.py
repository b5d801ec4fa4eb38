"""
RESPONSIBILITIES
- Manage the JSON files caching exchange rate observations per period key.
- Handle reads that tolerate corrupt files and atomic best-effort writes.
PROCESS OVERVIEW
1. path_for() maps a period key to <cache_dir>/ecb-rates-<period>.json.
2. read() returns a CachedPeriod, None when absent, or raises MalformedCacheError.
3. write() serializes a CachedPeriod through a temporary file and replaces the target.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Mapping

from pydantic import ValidationError

from spendboard_persist.schemas.rates import CachedPeriod
from spendboard_persist.stores.errors import CacheWriteError, MalformedCacheError
from spendboard_persist.utils.log import child_logger, get_logger
from spendboard_persist.utils.paths import CACHE_SUBDIR, ensure_dirs

CACHE_PREFIX = "ecb-rates"


class PeriodCache:
    """Directory of cached rate periods, one JSON file per period key."""

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        *,
        root: Path | str | None = None,
        prefix: str = CACHE_PREFIX,
        logger: logging.Logger | None = None,
    ) -> None:
        resolved_root = Path(root).expanduser().resolve() if root else None
        if cache_dir is not None:
            self.cache_dir = Path(cache_dir).expanduser().resolve()
        else:
            self.cache_dir = ensure_dirs(resolved_root, (CACHE_SUBDIR,))[CACHE_SUBDIR]
        self.prefix = prefix
        if logger is None:
            # an explicit cache_dir never creates the log directory
            logger = get_logger("period_cache", resolved_root) if cache_dir is None else child_logger("period_cache")
        self.logger = logger

    def path_for(self, period: str) -> Path:
        return self.cache_dir / f"{self.prefix}-{period}.json"

    def read(self, period: str) -> CachedPeriod | None:
        path = self.path_for(period)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
            payload = json.loads(text, parse_float=Decimal)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedCacheError(f"Unreadable cache file {path}: {exc}", path=str(path)) from exc
        if not isinstance(payload, dict):
            raise MalformedCacheError(f"Cache file {path} does not hold an object", path=str(path))
        try:
            cached = CachedPeriod.model_validate(payload)
        except ValidationError as exc:
            raise MalformedCacheError(f"Invalid cache file {path}: {exc}", path=str(path)) from exc
        self.logger.debug("Loaded %d cached rates for %s from %s", len(cached.rates), period, path)
        return cached

    def write(
        self,
        period: str,
        rates: Mapping[str, Decimal],
        *,
        fetched_at: datetime | None = None,
    ) -> Path:
        if fetched_at is None:
            record = CachedPeriod(period=period, rates=dict(rates))
        else:
            record = CachedPeriod(period=period, rates=dict(rates), fetched_at=fetched_at)
        path = self.path_for(period)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(record.to_dict(), handle, indent=2)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise CacheWriteError(f"Failed to write cache file {path}: {exc}") from exc
        self.logger.debug("Cached %d rates for %s at %s", len(record.rates), period, path)
        return path
