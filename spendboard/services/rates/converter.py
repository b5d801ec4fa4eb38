"""Computation helpers for converting transaction amounts into the base currency."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from spendboard.core.errors import AmbiguousAmountError, NoRateAvailableError, RateError, UnsupportedCurrencyError

from .asof import AsOfMatch, resolve_as_of
from .rate_store import DAY_KEY, RateStore

if TYPE_CHECKING:
    from .period_fetcher import PeriodFetcher

LOGGER = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
TRUE_FLAGS = frozenset({"true", "1", "yes", "y"})
FALSE_FLAGS = frozenset({"false", "0", "no", "n", ""})


class BothAmountsPolicy(str, Enum):
    """What to do when a transaction carries both a base and a quote amount."""

    PREFER_BASE = "prefer-base"
    STRICT = "strict"


@dataclass(frozen=True)
class TransactionFields:
    """Record keys holding the date, the two amounts and the credit flag."""

    base: str = "amountEUR"
    quote: str = "amountBRL"
    credit: str = "isCredit"
    date: str = "date"

    @classmethod
    def for_pair(cls, base_currency: str, quote_currency: str) -> "TransactionFields":
        return cls(base=f"amount{base_currency.upper()}", quote=f"amount{quote_currency.upper()}")

    def currency_fields(self) -> tuple[str, str, str]:
        return (self.base, self.quote, self.credit)


@dataclass(frozen=True)
class Transaction:
    date: str
    amount_in_base: Optional[Decimal] = None
    amount_in_quote: Optional[Decimal] = None
    is_credit: bool = False

    @classmethod
    def from_record(cls, record: Mapping[str, object], fields: TransactionFields | None = None) -> "Transaction":
        keys = fields or TransactionFields()
        raw_date = record.get(keys.date)
        return cls(
            date=str(raw_date).strip() if raw_date is not None else "",
            amount_in_base=_to_decimal(record.get(keys.base)),
            amount_in_quote=_to_decimal(record.get(keys.quote)),
            is_credit=_to_flag(record.get(keys.credit)),
        )


@dataclass(frozen=True)
class ConversionResult:
    """Normalized base-currency amount plus how it was obtained."""

    amount: Decimal
    converted: bool = True
    match: Optional[AsOfMatch] = None

    @property
    def rate(self) -> Optional[Decimal]:
        return self.match.rate if self.match else None


def _to_decimal(value: object) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            LOGGER.warning("Ignoring non-numeric amount: %r", value)
            return None
    if not number.is_finite():
        return None
    return number


def _to_flag(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, (bool, int, Decimal)):
        return bool(value)
    text = str(value).strip().lower()
    if text in TRUE_FLAGS:
        return True
    if text not in FALSE_FLAGS:
        LOGGER.warning("Treating unrecognised credit flag %r as false", value)
    return False


def _present(value: Optional[Decimal]) -> bool:
    return value is not None and value != 0


def round_amount(value: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""

    with localcontext() as ctx:
        # quantize needs every integer digit plus the two cents
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def convert_amount(
    txn: Transaction,
    store: RateStore,
    *,
    policy: BothAmountsPolicy = BothAmountsPolicy.PREFER_BASE,
    label: str | None = None,
) -> ConversionResult:
    """Return the transaction amount in the base currency, rounded to cents."""

    name = label or txn.date or "<undated>"
    base = txn.amount_in_base
    quote = txn.amount_in_quote
    amount = base if base is not None else ZERO
    converted = True
    match: Optional[AsOfMatch] = None

    if _present(quote) and not _present(base):
        try:
            if not DAY_KEY.match(txn.date):
                raise NoRateAvailableError(f"invalid transaction date {txn.date!r}", requested_date=txn.date)
            match = resolve_as_of(store, txn.date)
            # 1 base = rate quote
            amount = quote / match.rate
        except NoRateAvailableError as exc:
            LOGGER.warning("No rate found for %s, using quote amount as-is: %s", name, exc)
            amount = quote
            converted = False
    elif _present(quote) and _present(base):
        if policy is BothAmountsPolicy.STRICT:
            raise AmbiguousAmountError(f"Transaction {name} has both base and quote amounts")
        LOGGER.warning("Transaction %s has both base and quote amounts, using base amount", name)

    if txn.is_credit:
        amount = -abs(amount)

    return ConversionResult(amount=round_amount(amount), converted=converted, match=match)


def convert_transactions(
    records: Iterable[Mapping[str, object]],
    store: RateStore,
    *,
    fields: TransactionFields | None = None,
    policy: BothAmountsPolicy = BothAmountsPolicy.PREFER_BASE,
    drop_currency_fields: bool = True,
) -> list[dict[str, object]]:
    """Return new records carrying ``amount``; input order and count are kept."""

    keys = fields or TransactionFields()
    output: list[dict[str, object]] = []
    unconverted = 0
    for record in records:
        txn = Transaction.from_record(record, keys)
        label = str(record.get("id") or txn.date or len(output))
        result = convert_amount(txn, store, policy=policy, label=label)
        row = dict(record)
        if drop_currency_fields:
            for key in keys.currency_fields():
                row.pop(key, None)
        row["amount"] = result.amount
        if not result.converted:
            row["unconverted"] = True
            unconverted += 1
        output.append(row)
    LOGGER.info("Converted %d transactions (%d unconverted)", len(output), unconverted)
    return output


def convert_to_base(
    amount: Decimal,
    currency: str | None,
    date_text: str,
    fetcher: "PeriodFetcher",
    *,
    base_currency: str = "EUR",
    quote_currency: str = "BRL",
) -> Decimal:
    """Convert a single amount, returning it unchanged when no rate can be used.

    Rates come from the date's month and the month before it, so the 1st of a
    month can fall back to the previous month's last observation. The result is
    not rounded; callers round once after applying credit signs.
    """

    code = (currency or "").strip().upper()
    if not code or code == base_currency.upper():
        return amount
    if code != quote_currency.upper():
        raise UnsupportedCurrencyError(f"Unsupported currency: {currency}")
    if not date_text or not DAY_KEY.match(date_text):
        LOGGER.warning("Invalid date format: %s, skipping conversion", date_text)
        return amount

    try:
        store = fetcher.store_for_dates([date_text])
        match = resolve_as_of(store, date_text)
    except RateError as exc:
        LOGGER.warning("Failed to convert %s %s on %s: %s", amount, code, date_text, exc)
        return amount

    converted = amount / match.rate
    LOGGER.info(
        "Converted %s %s to %s %s using rate %s (1 %s = %s %s) on %s",
        amount,
        code,
        round_amount(converted),
        base_currency.upper(),
        match.rate,
        base_currency.upper(),
        match.rate,
        code,
        match.matched_key,
    )
    return converted
