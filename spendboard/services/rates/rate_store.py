"""Immutable date-keyed exchange rate series."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable

DAY_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_KEY = re.compile(r"^\d{4}-\d{2}$")


@dataclass(frozen=True, slots=True)
class RateObservation:
    """``1 base = rate quote`` on ``date``."""

    date: str
    rate: Decimal


def _validate_key(key: str) -> str:
    if not (DAY_KEY.match(key) or MONTH_KEY.match(key)):
        raise ValueError(f"rate key must be YYYY-MM-DD or YYYY-MM: {key!r}")
    return key


def _validate_rate(key: str, value: object) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"rate for {key} must be numeric: {value!r}")
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"rate for {key} must be numeric: {value!r}") from exc
    if not rate.is_finite() or rate <= 0:
        raise ValueError(f"rate for {key} must be positive: {value!r}")
    return rate


class RateStore(Mapping[str, Decimal]):
    """Read-only mapping of rate keys to rates with keys kept in ascending order.

    Keys are ``YYYY-MM-DD`` or ``YYYY-MM`` strings, so ascending string order
    is chronological order. Combining stores returns a new instance.
    """

    __slots__ = ("_rates", "_keys")

    def __init__(self, rates: Mapping[str, object] | Iterable[tuple[str, object]] | None = None) -> None:
        items = rates.items() if isinstance(rates, Mapping) else (rates or ())
        collected: dict[str, Decimal] = {}
        for key, value in items:
            collected[_validate_key(str(key))] = _validate_rate(str(key), value)
        self._keys: tuple[str, ...] = tuple(sorted(collected))
        self._rates: dict[str, Decimal] = {key: collected[key] for key in self._keys}

    @classmethod
    def from_observations(cls, observations: Iterable[RateObservation]) -> "RateStore":
        return cls((obs.date, obs.rate) for obs in observations)

    def __getitem__(self, key: str) -> Decimal:
        return self._rates[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        if not self._keys:
            return "RateStore(empty)"
        return f"RateStore({len(self._keys)} keys, {self._keys[0]}..{self._keys[-1]})"

    @property
    def sorted_keys(self) -> tuple[str, ...]:
        return self._keys

    def observations(self) -> list[RateObservation]:
        return [RateObservation(key, self._rates[key]) for key in self._keys]

    def merge(self, other: Mapping[str, Decimal]) -> "RateStore":
        """Return a new store holding both series; ``other`` wins on equal keys."""

        combined: dict[str, Decimal] = dict(self._rates)
        combined.update(other)
        return RateStore(combined)

    def to_dict(self) -> dict[str, Decimal]:
        return dict(self._rates)


def reduce_to_monthly(rates: Mapping[str, Decimal]) -> RateStore:
    """Keep the earliest observation of each calendar month, keyed ``YYYY-MM``."""

    monthly: dict[str, Decimal] = {}
    for key in sorted(rates):
        month = key[:7]
        if month not in monthly:
            monthly[month] = rates[key]
    return RateStore(monthly)
