"""
RESPONSIBILITIES
- Provide the typed container for one cached rate period.
- Normalize rate keys and decimals before they are written to disk.
PROCESS OVERVIEW
1. PeriodCache builds CachedPeriod from freshly fetched observations.
2. to_dict() prepares the canonical JSON payload (period, fetchedAt, rates).
3. Reads validate raw JSON back into CachedPeriod; legacy files naming the
   period "year" or "month" are accepted.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, MutableMapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

RATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}(-\d{2})?$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class CachedPeriod(BaseModel):
    """Persisted observations for a single period key."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    period: str = Field(validation_alias=AliasChoices("period", "year", "month"))
    fetched_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("fetchedAt", "fetched_at"),
    )
    rates: dict[str, Decimal]

    @field_validator("period", mode="before")
    @classmethod
    def _period_text(cls, value: Any) -> str:
        text = str(value).strip()
        if not text:
            raise ValueError("period is required")
        return text

    @field_validator("rates")
    @classmethod
    def _valid_rates(cls, value: dict[str, Decimal]) -> dict[str, Decimal]:
        for key, rate in value.items():
            if not RATE_KEY_PATTERN.match(key):
                raise ValueError(f"invalid rate key: {key!r}")
            if not rate.is_finite() or rate <= 0:
                raise ValueError(f"invalid rate for {key}: {rate}")
        return dict(sorted(value.items()))

    def to_dict(self) -> MutableMapping[str, object]:
        fetched = self.fetched_at
        if fetched.tzinfo is None:
            fetched = fetched.replace(tzinfo=timezone.utc)
        return {
            "period": self.period,
            "fetchedAt": fetched.isoformat(),
            "rates": {key: float(rate) for key, rate in self.rates.items()},
        }
