"""Client utilities for fetching euro reference rates from the ECB data API."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag
from requests.adapters import HTTPAdapter
from requests.exceptions import Timeout

from spendboard.core.errors import NoDataError, SourceTimeoutError, SourceUnavailableError

from .rate_limiter import RateLimiter

LOGGER = logging.getLogger(__name__)

USER_AGENT = "SpendboardBot/1.0"
DEFAULT_API_BASE = "https://data-api.ecb.europa.eu/service/data/EXR"
DEFAULT_SERIES_KEY = "D.BRL.EUR.SP00.A"
STREAM_CHUNK_SIZE = 16 * 1024


def _remaining_deadline(deadline_end: float) -> float:
    return max(0.0, deadline_end - time.monotonic())


@dataclass
class RequestConfig:
    """Runtime configuration for outbound HTTP requests."""

    timeout: float = 10.0
    api_base: str = DEFAULT_API_BASE
    series_key: str = DEFAULT_SERIES_KEY


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.sdmx.genericdata+xml;version=2.1, application/xml, */*",
            "Accept-Encoding": "gzip, deflate",
        }
    )
    adapter = HTTPAdapter(max_retries=0, pool_connections=2, pool_maxsize=2)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class EcbClient:
    """Fetch the SDMX XML for one period of a daily EXR series."""

    def __init__(
        self,
        config: RequestConfig | None = None,
        *,
        session: requests.Session | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        self.config = config or RequestConfig()
        self._session = session or _build_session()
        self._limiter = limiter or RateLimiter()

    @property
    def url(self) -> str:
        return f"{self.config.api_base.rstrip('/')}/{self.config.series_key}"

    def _timeout_error(self, period: str) -> SourceTimeoutError:
        return SourceTimeoutError(
            f"ECB API request timed out after {self.config.timeout:g}s",
            period=period,
        )

    def fetch_period_xml(self, period: str) -> str:
        """Return the raw XML body for ``startPeriod=endPeriod=period``.

        ``config.timeout`` bounds the whole request, body download included.
        """

        params = {"startPeriod": period, "endPeriod": period}
        self._limiter.wait()
        LOGGER.info("Fetching ECB rates for %s from API...", period)
        deadline_end = time.monotonic() + self.config.timeout
        try:
            response = self._session.get(self.url, params=params, timeout=self.config.timeout, stream=True)
        except Timeout as exc:
            raise self._timeout_error(period) from exc
        except requests.RequestException as exc:
            LOGGER.warning("Request failed for %s: %s", period, exc)
            raise SourceUnavailableError(f"failed to fetch ECB rates for {period}: {exc}", period=period) from exc

        try:
            if not response.ok:
                raise SourceUnavailableError(
                    f"ECB API returned {response.status_code}: {response.reason}",
                    period=period,
                    status_code=response.status_code,
                )
            body = self._read_body(response, period, deadline_end)
        finally:
            response.close()
        return body.decode(response.encoding or "utf-8", errors="replace")

    def _read_body(self, response: requests.Response, period: str, deadline_end: float) -> bytes:
        expired = threading.Event()

        def _abort() -> None:
            # Unblocks a read stuck on a source that trickles bytes.
            expired.set()
            try:
                response.raw.shutdown()
            except (ValueError, OSError) as exc:
                LOGGER.debug("Could not shut down stalled ECB response for %s: %s", period, exc)

        watchdog = threading.Timer(_remaining_deadline(deadline_end), _abort)
        watchdog.daemon = True
        watchdog.start()
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=STREAM_CHUNK_SIZE):
                if expired.is_set() or _remaining_deadline(deadline_end) <= 0:
                    raise self._timeout_error(period)
                chunks.append(chunk)
        except (requests.RequestException, OSError) as exc:
            if expired.is_set() or _remaining_deadline(deadline_end) <= 0:
                raise self._timeout_error(period) from exc
            LOGGER.warning("Reading ECB response for %s failed: %s", period, exc)
            raise SourceUnavailableError(f"failed to read ECB rates for {period}: {exc}", period=period) from exc
        finally:
            watchdog.cancel()
        if expired.is_set():
            raise self._timeout_error(period)
        return b"".join(chunks)

    def fetch_period(self, period: str) -> dict[str, Decimal]:
        """Fetch and parse one period into ``{YYYY-MM-DD: rate}``."""

        return parse_observations(self.fetch_period_xml(period))

    def close(self) -> None:
        self._session.close()


def _local_name(name: Optional[str]) -> str:
    if not name:
        return ""
    return name.rsplit(":", 1)[-1].lower()


def _attr(tag: Tag, name: str) -> Optional[str]:
    for key, value in tag.attrs.items():
        if _local_name(key) == name:
            return value if isinstance(value, str) else " ".join(value)
    return None


def _child(tag: Tag, name: str) -> Optional[Tag]:
    for child in tag.find_all(True):
        if _local_name(child.name) == name:
            return child
    return None


def _observation_pair(obs: Tag) -> tuple[Optional[str], Optional[str]]:
    # Structure-specific messages carry the values as attributes on <Obs>.
    period = _attr(obs, "time_period")
    value = _attr(obs, "obs_value")
    if period is not None or value is not None:
        return period, value
    dimension = _child(obs, "obsdimension")
    observed = _child(obs, "obsvalue")
    return (
        _attr(dimension, "value") if dimension is not None else None,
        _attr(observed, "value") if observed is not None else None,
    )


def _valid_date(text: str) -> bool:
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return len(text) == 10


def iter_observations(xml_text: str) -> Iterable[tuple[str, Decimal]]:
    """Yield ``(date, rate)`` pairs, skipping malformed observations."""

    soup = BeautifulSoup(xml_text, "html.parser")
    for obs in soup.find_all(lambda tag: _local_name(tag.name) == "obs"):
        raw_date, raw_value = _observation_pair(obs)
        if not raw_date or not raw_value:
            continue
        date_text = raw_date.strip()
        if not _valid_date(date_text):
            LOGGER.debug("Skipping observation with unparseable date: %s", raw_date)
            continue
        try:
            rate = Decimal(raw_value.strip())
        except InvalidOperation:
            LOGGER.debug("Skipping observation with invalid value: %s", raw_value)
            continue
        if not rate.is_finite() or rate <= 0:
            LOGGER.debug("Skipping observation with non-positive value: %s", raw_value)
            continue
        yield date_text, rate


def parse_observations(xml_text: str) -> dict[str, Decimal]:
    """Return ``{date: rate}`` from an SDMX response; later duplicates win."""

    rates: dict[str, Decimal] = {}
    for obs_date, rate in iter_observations(xml_text):
        rates[obs_date] = rate
    if not rates:
        raise NoDataError("No rates found in ECB XML response")
    return rates
