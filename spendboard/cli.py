"""Typer based command line entry points for the spendboard data loaders."""

from __future__ import annotations

import json
import sys
import time
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import typer

from spendboard.config import Settings, Unconfigured, load_settings, resolve_rate_window
from spendboard.core.errors import AmbiguousAmountError, ConfigError, RateError
from spendboard.core.logger import get_logger, set_level
from spendboard.services.months import generate_month_list
from spendboard.services.rates import (
    BothAmountsPolicy,
    PeriodFetcher,
    RateStore,
    TransactionFields,
    convert_transactions,
    resolve_as_of,
)
from spendboard.services.rates.converter import round_amount

BOTH_AMOUNTS_CHOICES = {policy.value for policy in BothAmountsPolicy}

app = typer.Typer(help="Build-time data loaders for the spending dashboard.")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _emit(payload: Any, output: Path | None, *, indent: int | None = None) -> None:
    text = json.dumps(payload, default=_json_default, indent=indent, ensure_ascii=False)
    if output is None:
        sys.stdout.write(text + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")


def _settings(ctx: typer.Context) -> Settings:
    obj = ctx.ensure_object(dict)
    cached = obj.get("settings")
    if isinstance(cached, Settings):
        return cached
    logger = get_logger()
    try:
        settings = load_settings(obj.get("config"))
    except ConfigError as exc:
        logger.error("Unable to load settings: %s", exc)
        typer.secho(f"Unable to load settings: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    obj["settings"] = settings
    return settings


def _build_fetcher(settings: Settings) -> PeriodFetcher:
    return PeriodFetcher.from_settings(settings)


def _validate_date(value: str) -> str:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date().isoformat()
    except ValueError as exc:
        raise typer.BadParameter("date must be in YYYY-MM-DD format") from exc


def _validate_policy(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.lower()
    if value not in BOTH_AMOUNTS_CHOICES:
        raise typer.BadParameter("both-amounts must be one of prefer-base, strict")
    return value


def _load_json(path: Path) -> Any:
    try:
        if str(path) == "-":
            text = sys.stdin.read()
        else:
            text = path.read_text(encoding="utf-8")
        return json.loads(text, parse_float=Decimal)
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Unable to read JSON from {path}: {exc}") from exc


def _load_rates_file(path: Path) -> RateStore:
    payload = _load_json(path)
    if not isinstance(payload, dict):
        raise typer.BadParameter(f"Rates file must contain an object: {path}")
    try:
        return RateStore(payload)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid rates in {path}: {exc}") from exc


@app.callback()
def main_callback(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Settings YAML (defaults to the bundled settings.yaml).",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Configure logging and settings before executing commands."""

    try:
        set_level(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

    ctx.ensure_object(dict)["config"] = config


@app.command("currency-rates")
def cli_currency_rates(
    ctx: typer.Context,
    start_year: Optional[int] = typer.Option(None, help="First year to load (defaults to settings)."),
    end_year: Optional[int] = typer.Option(None, help="Last year to load (defaults to the current year)."),
    output: Optional[Path] = typer.Option(None, help="Write JSON here instead of stdout.", resolve_path=True),
) -> None:
    """Emit the daily rate map {YYYY-MM-DD: rate} for the configured years."""

    logger = get_logger()
    settings = _settings(ctx)
    window = resolve_rate_window(settings, start_year=start_year, end_year=end_year)
    if isinstance(window, Unconfigured):
        logger.warning("Rates loader unconfigured (%s), returning empty rates", window.reason)
        _emit({}, output, indent=2)
        return

    started = time.monotonic()
    fetcher = _build_fetcher(settings)
    store = fetcher.fetch_daily_range(window.start_year, window.end_year)
    logger.info(
        "Daily %s/%s rates ready: %d entries (%s-%s) in %.2fs",
        settings.quote_currency,
        settings.base_currency,
        len(store),
        window.start_year,
        window.end_year,
        time.monotonic() - started,
    )
    _emit(store.to_dict(), output, indent=2)


@app.command("monthly-rates")
def cli_monthly_rates(
    ctx: typer.Context,
    start_year: Optional[int] = typer.Option(None, help="First year to load (defaults to settings)."),
    end_year: Optional[int] = typer.Option(None, help="Last year to load (defaults to the current year)."),
    output: Optional[Path] = typer.Option(None, help="Write JSON here instead of stdout.", resolve_path=True),
) -> None:
    """Emit the first available rate of each month {YYYY-MM: rate}."""

    logger = get_logger()
    settings = _settings(ctx)
    window = resolve_rate_window(settings, start_year=start_year, end_year=end_year)
    if isinstance(window, Unconfigured):
        logger.warning("Rates loader unconfigured (%s), returning empty rates", window.reason)
        _emit({}, output, indent=2)
        return

    fetcher = _build_fetcher(settings)
    try:
        store = fetcher.fetch_yearly_monthly(window.start_year, window.end_year)
    except RateError as exc:
        logger.error("Unable to load monthly rates for %s-%s: %s", window.start_year, window.end_year, exc)
        raise typer.Exit(code=1) from exc
    _emit(store.to_dict(), output, indent=2)


@app.command("get-rate")
def cli_get_rate(
    ctx: typer.Context,
    date_text: str = typer.Option(..., "--date", help="Target date in YYYY-MM-DD format", callback=_validate_date),
    amount: Optional[str] = typer.Option(None, "--amount", help="Also convert this quote-currency amount."),
) -> None:
    """Print the rate effective on a date (as-of the latest prior observation)."""

    logger = get_logger()
    settings = _settings(ctx)
    fetcher = _build_fetcher(settings)
    pair = f"{settings.quote_currency}/{settings.base_currency}"

    store = fetcher.store_for_dates([date_text])
    try:
        match = resolve_as_of(store, date_text)
    except RateError as exc:
        logger.error("Unable to obtain %s rate for %s: %s", pair, date_text, exc)
        raise typer.Exit(code=1) from exc

    suffix = "" if match.exact else f" (as-of {match.matched_key})"
    typer.echo(f"{date_text} {pair} = {match.rate:.4f}{suffix}")

    if amount is not None:
        try:
            value = Decimal(amount)
        except InvalidOperation as exc:
            raise typer.BadParameter(f"Invalid decimal for amount: {amount}") from exc
        if not value.is_finite():
            raise typer.BadParameter(f"Invalid decimal for amount: {amount}")
        # 1 base = rate quote
        converted = round_amount(value / match.rate)
        typer.echo(f"{value} {settings.quote_currency} = {converted} {settings.base_currency}")


@app.command("convert")
def cli_convert(
    ctx: typer.Context,
    input_path: Path = typer.Option(..., "--input", "-i", help="Transactions JSON array ('-' for stdin)."),
    rates: Optional[Path] = typer.Option(
        None,
        "--rates",
        help="Rates JSON {date: rate}; fetched from the ECB when omitted.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout.", resolve_path=True),
    keep_currency_fields: bool = typer.Option(
        False,
        "--keep-currency-fields/--drop-currency-fields",
        help="Keep the per-currency amount and credit fields next to 'amount'.",
    ),
    both_amounts: Optional[str] = typer.Option(
        None,
        "--both-amounts",
        help="Policy when both amounts are filled (prefer-base/strict).",
        callback=_validate_policy,
    ),
) -> None:
    """Replace per-currency amounts with a single base-currency 'amount'."""

    logger = get_logger()
    settings = _settings(ctx)
    records = _load_json(input_path)
    if not isinstance(records, list) or not all(isinstance(item, dict) for item in records):
        raise typer.BadParameter("Transactions input must be a JSON array of objects", param_hint="--input")

    fields = TransactionFields.for_pair(settings.base_currency, settings.quote_currency)
    policy = BothAmountsPolicy(both_amounts or settings.both_amounts_policy)

    if rates is not None:
        store = _load_rates_file(rates)
    else:
        fetcher = _build_fetcher(settings)
        store = fetcher.store_for_dates(str(item.get(fields.date) or "") for item in records)

    try:
        converted = convert_transactions(
            records,
            store,
            fields=fields,
            policy=policy,
            drop_currency_fields=not keep_currency_fields,
        )
    except AmbiguousAmountError as exc:
        logger.error("Conversion aborted: %s", exc)
        typer.secho(f"Conversion aborted: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    _emit(converted, output)


@app.command("months")
def cli_months(
    ctx: typer.Context,
    first_month: Optional[str] = typer.Option(None, help="First expense month YYYY-MM (defaults to settings)."),
    output: Optional[Path] = typer.Option(None, help="Write JSON here instead of stdout.", resolve_path=True),
) -> None:
    """Emit the list of expense months, newest first."""

    settings = _settings(ctx)
    months = generate_month_list(first_month or settings.first_expense_month, date.today())
    _emit(months, output)


if __name__ == "__main__":
    app()
