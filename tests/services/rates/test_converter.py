"""Tests for amount and batch conversion into the base currency."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from spendboard.core.errors import AmbiguousAmountError, NoDataError, UnsupportedCurrencyError
from spendboard.services.rates import (
    BothAmountsPolicy,
    PeriodFetcher,
    RateStore,
    Transaction,
    TransactionFields,
    convert_amount,
    convert_to_base,
    convert_transactions,
)


@pytest.fixture
def store() -> RateStore:
    return RateStore({"2024-01-10": "5.40", "2024-01-15": "5.50"})


def _txn(**kwargs: object) -> Transaction:
    record = {"date": "2024-01-12", "amountEUR": 0, "amountBRL": 0, "isCredit": False}
    record.update(kwargs)
    return Transaction.from_record(record)


def test_quote_amount_is_divided_by_as_of_rate(store: RateStore) -> None:
    result = convert_amount(_txn(amountBRL=540), store)

    assert result.amount == Decimal("100.00")
    assert result.converted
    assert result.rate == Decimal("5.40")
    assert result.match is not None and result.match.matched_key == "2024-01-10"


def test_credit_forces_negative_amount(store: RateStore) -> None:
    result = convert_amount(_txn(amountBRL=540, isCredit=True), store)

    assert result.amount == Decimal("-100.00")


def test_credit_negates_already_negative_amount_once(store: RateStore) -> None:
    result = convert_amount(_txn(amountEUR=-12.5, isCredit=True), store)

    assert result.amount == Decimal("-12.50")


def test_base_amount_passes_through_without_lookup() -> None:
    result = convert_amount(_txn(amountEUR=42), RateStore())

    assert result.amount == Decimal("42.00")
    assert result.converted
    assert result.match is None


def test_neither_amount_gives_zero(store: RateStore) -> None:
    assert convert_amount(_txn(), store).amount == Decimal("0.00")


def test_rounding_is_half_away_from_zero() -> None:
    store = RateStore({"2024-01-10": "2"})

    assert convert_amount(_txn(amountBRL="0.05"), store).amount == Decimal("0.03")
    assert convert_amount(_txn(amountBRL="0.05", isCredit=True), store).amount == Decimal("-0.03")


def test_missing_rate_falls_back_to_quote_amount(caplog: pytest.LogCaptureFixture) -> None:
    store = RateStore({"2024-02-01": "5.60"})

    with caplog.at_level(logging.WARNING):
        result = convert_amount(_txn(amountBRL=540), store)

    assert result.amount == Decimal("540.00")
    assert not result.converted
    assert result.rate is None
    assert "No rate found" in caplog.text


def test_invalid_date_falls_back_to_quote_amount(store: RateStore) -> None:
    result = convert_amount(_txn(date="12/01/2024", amountBRL="10.456"), store)

    assert result.amount == Decimal("10.46")
    assert not result.converted


def test_both_amounts_prefers_base_and_warns(store: RateStore, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        result = convert_amount(_txn(amountEUR=20, amountBRL=540), store, label="tx-7")

    assert result.amount == Decimal("20.00")
    assert "tx-7" in caplog.text
    assert "both base and quote amounts" in caplog.text


def test_both_amounts_strict_policy_raises(store: RateStore) -> None:
    with pytest.raises(AmbiguousAmountError):
        convert_amount(_txn(amountEUR=20, amountBRL=540), store, policy=BothAmountsPolicy.STRICT)


def test_batch_keeps_order_and_count_and_drops_currency_fields(store: RateStore) -> None:
    records = [
        {"id": "a", "date": "2024-01-12", "amountEUR": 0, "amountBRL": 540, "isCredit": False, "title": "Rent"},
        {"id": "b", "date": "2024-01-20", "amountEUR": 42, "amountBRL": 0, "isCredit": True},
        {"id": "c", "date": "2023-12-31", "amountEUR": 0, "amountBRL": "11", "isCredit": False},
    ]

    converted = convert_transactions(records, store)

    assert [row["id"] for row in converted] == ["a", "b", "c"]
    assert converted[0] == {"id": "a", "date": "2024-01-12", "title": "Rent", "amount": Decimal("100.00")}
    assert converted[1]["amount"] == Decimal("-42.00")
    assert converted[2]["amount"] == Decimal("11.00")
    assert converted[2]["unconverted"] is True
    assert "unconverted" not in converted[0]
    for row in converted:
        assert "amountEUR" not in row and "amountBRL" not in row and "isCredit" not in row


def test_batch_does_not_mutate_input(store: RateStore) -> None:
    records = [{"date": "2024-01-12", "amountEUR": 0, "amountBRL": 540, "isCredit": False}]
    snapshot = [dict(row) for row in records]

    convert_transactions(records, store, drop_currency_fields=False)

    assert records == snapshot


def test_batch_can_keep_currency_fields(store: RateStore) -> None:
    records = [{"date": "2024-01-12", "amountEUR": 0, "amountBRL": 540, "isCredit": False}]

    converted = convert_transactions(records, store, drop_currency_fields=False)

    assert converted[0]["amountBRL"] == 540
    assert converted[0]["amount"] == Decimal("100.00")


def test_batch_with_custom_currency_pair() -> None:
    fields = TransactionFields.for_pair("eur", "usd")
    store = RateStore({"2024-01-10": "1.25"})

    converted = convert_transactions(
        [{"date": "2024-01-11", "amountEUR": None, "amountUSD": 50, "isCredit": False}],
        store,
        fields=fields,
    )

    assert converted == [{"date": "2024-01-11", "amount": Decimal("40.00")}]


class _StubFetcher(PeriodFetcher):
    def __init__(self, stores: dict[str, RateStore], error: Exception | None = None) -> None:
        super().__init__(client=None, cache=None)  # type: ignore[arg-type]
        self.stores = stores
        self.error = error
        self.calls: list[str] = []

    def fetch_period(self, period: str) -> RateStore:
        self.calls.append(period)
        if self.error is not None:
            raise self.error
        if period not in self.stores:
            raise NoDataError(f"No rates found for {period}")
        return self.stores[period]


def test_convert_to_base_uses_month_rates() -> None:
    fetcher = _StubFetcher({"2024-01": RateStore({"2024-01-10": "5.40"})})

    amount = convert_to_base(Decimal("540"), "brl", "2024-01-12", fetcher)

    assert amount == Decimal("100")
    assert fetcher.calls == ["2023-12", "2024-01"]


def test_convert_to_base_on_first_of_month_uses_previous_month() -> None:
    fetcher = _StubFetcher({"2023-12": RateStore({"2023-12-28": "5.35"})})

    amount = convert_to_base(Decimal("535"), "BRL", "2024-01-01", fetcher)

    assert amount == Decimal("100")


def test_convert_to_base_is_identity_for_base_currency() -> None:
    fetcher = _StubFetcher({})

    assert convert_to_base(Decimal("12.34"), "EUR", "2024-01-12", fetcher) == Decimal("12.34")
    assert convert_to_base(Decimal("12.34"), None, "2024-01-12", fetcher) == Decimal("12.34")
    assert fetcher.calls == []


def test_convert_to_base_rejects_unknown_currency() -> None:
    with pytest.raises(UnsupportedCurrencyError):
        convert_to_base(Decimal("1"), "USD", "2024-01-12", _StubFetcher({}))


def test_convert_to_base_degrades_on_source_failure() -> None:
    fetcher = _StubFetcher({}, error=NoDataError("No rates found in ECB XML response"))

    assert convert_to_base(Decimal("540"), "BRL", "2024-01-12", fetcher) == Decimal("540")


def test_convert_to_base_skips_invalid_date() -> None:
    fetcher = _StubFetcher({})

    assert convert_to_base(Decimal("540"), "BRL", "2024-1-12", fetcher) == Decimal("540")
    assert fetcher.calls == []


def test_huge_base_amount_rounds_without_overflowing_precision(store: RateStore) -> None:
    result = convert_amount(_txn(amountEUR="1e27"), store)

    assert result.amount == Decimal("1000000000000000000000000000.00")


def test_huge_quote_amount_converts_in_batch(store: RateStore) -> None:
    rows = convert_transactions([{"id": "big", "date": "2024-01-12", "amountBRL": "5.4e30"}], store)

    assert rows[0]["amount"] == Decimal("1000000000000000000000000000000.00")


@pytest.mark.parametrize(
    ("flag", "expected"),
    [
        ("false", Decimal("10.00")),
        ("False", Decimal("10.00")),
        ("0", Decimal("10.00")),
        ("", Decimal("10.00")),
        (None, Decimal("10.00")),
        (0, Decimal("10.00")),
        ("true", Decimal("-10.00")),
        ("TRUE", Decimal("-10.00")),
        ("1", Decimal("-10.00")),
        (1, Decimal("-10.00")),
        (True, Decimal("-10.00")),
    ],
)
def test_credit_flag_text_is_parsed(store: RateStore, flag: object, expected: Decimal) -> None:
    assert convert_amount(_txn(amountEUR=10, isCredit=flag), store).amount == expected


def test_unrecognised_credit_flag_is_not_a_credit(store: RateStore, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        result = convert_amount(_txn(amountEUR=10, isCredit="maybe"), store)

    assert result.amount == Decimal("10.00")
    assert "unrecognised credit flag" in caplog.text
