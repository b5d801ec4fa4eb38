"""Cache-first loading of rate periods for the build-time loaders."""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

from spendboard.config import Settings
from spendboard.core.errors import RateError
from spendboard_persist.stores.errors import CacheWriteError, MalformedCacheError
from spendboard_persist.stores.period_cache import PeriodCache

from .ecb_client import EcbClient, RequestConfig
from .rate_limiter import RateLimiter
from .rate_store import RateStore, reduce_to_monthly

LOGGER = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r"^(?P<year>\d{4})(?:-(?P<month>\d{2})(?:-(?P<day>\d{2}))?)?$")
DAILY_YEAR_SUFFIX = "daily"


def parse_period_key(period: str) -> str:
    """Validate a ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` key and return its granularity."""

    match = PERIOD_PATTERN.match(period or "")
    if not match:
        raise ValueError(f"Invalid period key: {period!r}")
    year = int(match.group("year"))
    month = match.group("month")
    day = match.group("day")
    if day is not None:
        date(year, int(month), int(day))
        return "day"
    if month is not None:
        if not 1 <= int(month) <= 12:
            raise ValueError(f"Invalid month in period key: {period!r}")
        return "month"
    return "year"


def _previous_month(month_key: str) -> str:
    year, month = int(month_key[:4]), int(month_key[5:7])
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


class PeriodFetcher:
    """Return RateStore fragments per period, preferring the on-disk cache.

    Month and day keys yield daily observations; year keys are reduced to the
    first observation of each month. Periods are fetched one at a time.
    """

    def __init__(self, client: EcbClient, cache: PeriodCache) -> None:
        self.client = client
        self.cache = cache

    @classmethod
    def from_settings(cls, settings: Settings, *, cache: PeriodCache | None = None) -> "PeriodFetcher":
        config = RequestConfig(
            timeout=settings.timeout_sec,
            api_base=settings.api_base,
            series_key=settings.series_key,
        )
        client = EcbClient(config, limiter=RateLimiter(settings.min_interval_sec))
        return cls(client, cache or PeriodCache(settings.cache_dir))

    def _read_cache(self, cache_key: str) -> RateStore | None:
        try:
            cached = self.cache.read(cache_key)
        except MalformedCacheError as exc:
            LOGGER.warning("Failed to read cache for %s, fetching fresh data: %s", cache_key, exc)
            return None
        if cached is None:
            return None
        try:
            store = RateStore(cached.rates)
        except ValueError as exc:
            LOGGER.warning("Cached rates for %s are invalid, fetching fresh data: %s", cache_key, exc)
            return None
        LOGGER.info("Using cached ECB rates for %s", cache_key)
        return store

    def _write_cache(self, cache_key: str, rates: Mapping[str, Decimal]) -> None:
        try:
            path = self.cache.write(cache_key, rates)
        except (CacheWriteError, ValueError) as exc:
            LOGGER.warning("Failed to cache rates for %s: %s", cache_key, exc)
            return
        LOGGER.info("Cached ECB rates for %s (%d entries) at %s", cache_key, len(rates), path)

    def _load(self, cache_key: str, query_period: str, *, monthly: bool) -> RateStore:
        cached = self._read_cache(cache_key)
        if cached is not None:
            return cached
        daily = self.client.fetch_period(query_period)
        store = reduce_to_monthly(daily) if monthly else RateStore(daily)
        self._write_cache(cache_key, store)
        return store

    def fetch_period(self, period: str) -> RateStore:
        """Return the store fragment for ``period``; year keys come back monthly."""

        granularity = parse_period_key(period)
        return self._load(period, period, monthly=granularity == "year")

    def fetch_daily_year(self, year: int | str) -> RateStore:
        """Return every daily observation of ``year``."""

        year_key = f"{int(year):04d}"
        store = self._load(f"{year_key}-{DAILY_YEAR_SUFFIX}", year_key, monthly=False)
        LOGGER.info("Fetched %d daily rates for %s", len(store), year_key)
        return store

    def fetch_yearly_monthly(self, start_year: int, end_year: int) -> RateStore:
        """Merge the first rate of each month for ``start_year..end_year``."""

        combined = RateStore()
        for year in range(int(start_year), int(end_year) + 1):
            combined = combined.merge(self.fetch_period(f"{year:04d}"))
        LOGGER.info("Loaded %d monthly rates (%s-%s)", len(combined), start_year, end_year)
        return combined

    def fetch_daily_range(self, start_year: int, end_year: int) -> RateStore:
        """Merge daily years; a failing year is logged and skipped."""

        combined = RateStore()
        for year in range(int(start_year), int(end_year) + 1):
            try:
                combined = combined.merge(self.fetch_daily_year(year))
            except RateError as exc:
                LOGGER.error("Failed to fetch rates for %s: %s", year, exc)
                continue
        LOGGER.info("Total: %d daily rates (%s-%s)", len(combined), start_year, end_year)
        return combined

    def store_for_dates(self, dates: Iterable[str]) -> RateStore:
        """Fetch the months covering ``dates`` plus the month before the earliest."""

        months: set[str] = set()
        for value in dates:
            text = (value or "").strip()
            if len(text) < 7:
                continue
            month_key = text[:7]
            try:
                parse_period_key(month_key)
            except ValueError:
                LOGGER.debug("Ignoring unparseable transaction date: %s", value)
                continue
            months.add(month_key)
        if not months:
            return RateStore()
        months.add(_previous_month(min(months)))

        combined = RateStore()
        for month_key in sorted(months):
            try:
                combined = combined.merge(self.fetch_period(month_key))
            except RateError as exc:
                LOGGER.warning("Rates unavailable for %s: %s", month_key, exc)
        return combined
