"""As-of rate resolution against a RateStore."""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from decimal import Decimal

from spendboard.core.errors import NoRateAvailableError

from .rate_store import RateStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AsOfMatch:
    """Rate effective on ``requested`` and the store key it came from."""

    requested: str
    matched_key: str
    rate: Decimal

    @property
    def exact(self) -> bool:
        return self.requested == self.matched_key


def resolve_as_of(store: RateStore, date_key: str) -> AsOfMatch:
    """Return the observation on ``date_key`` or the most recent one before it."""

    if date_key in store:
        return AsOfMatch(date_key, date_key, store[date_key])

    keys = store.sorted_keys
    idx = bisect_right(keys, date_key)
    if idx == 0:
        raise NoRateAvailableError(
            f"No exchange rate found for {date_key} or any previous date",
            requested_date=date_key,
        )
    matched = keys[idx - 1]
    LOGGER.debug("Rate for %s not found, using as-of date %s (rate: %s)", date_key, matched, store[matched])
    return AsOfMatch(date_key, matched, store[matched])


def resolve_rate(store: RateStore, date_key: str) -> Decimal:
    return resolve_as_of(store, date_key).rate
