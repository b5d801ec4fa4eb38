"""Month lists for the per-month expense pages."""

from __future__ import annotations

import logging
import re
from datetime import date

LOGGER = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
FALLBACK_MONTHS = 6


def _shift(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def last_n_months(n: int, today: date | None = None) -> list[str]:
    """Return ``n`` months ending with the current one, newest first."""

    current = today or date.today()
    months: list[str] = []
    for offset in range(n):
        year, month = _shift(current.year, current.month, -offset)
        months.append(f"{year:04d}-{month:02d}")
    return months


def generate_month_list(first_month: str | None, today: date | None = None) -> list[str]:
    """Return months from ``first_month`` to the current month, newest first.

    Falls back to the last six months when ``first_month`` is missing or invalid.
    """

    current = today or date.today()
    if not first_month:
        LOGGER.warning("First expense month not set, using last %d months as fallback", FALLBACK_MONTHS)
        return last_n_months(FALLBACK_MONTHS, current)
    if not MONTH_PATTERN.match(first_month):
        LOGGER.warning(
            "First expense month has invalid format: %r (expected YYYY-MM), using last %d months as fallback",
            first_month,
            FALLBACK_MONTHS,
        )
        return last_n_months(FALLBACK_MONTHS, current)

    start_year, start_month = int(first_month[:4]), int(first_month[5:7])
    span = (current.year - start_year) * 12 + (current.month - start_month) + 1
    if span <= 0:
        LOGGER.warning("First expense month %s is in the future, using current month only", first_month)
        return last_n_months(1, current)
    return last_n_months(span, current)
