"""Configuration helpers for the spendboard loaders.

Settings come from the bundled ``settings.yaml`` (or a caller supplied file)
and are then overridden by ``SPENDBOARD_*`` environment variables, including
those declared in a local ``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from spendboard.core.errors import ConfigError


CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_SETTINGS_PATH = CONFIG_DIR / "settings.yaml"

ENV_OVERRIDES: dict[str, str] = {
    "base_currency": "SPENDBOARD_BASE_CURRENCY",
    "quote_currency": "SPENDBOARD_QUOTE_CURRENCY",
    "api_base": "SPENDBOARD_API_BASE",
    "timeout_sec": "SPENDBOARD_TIMEOUT_SEC",
    "min_interval_sec": "SPENDBOARD_MIN_INTERVAL_SEC",
    "rates_start_year": "SPENDBOARD_RATES_START_YEAR",
    "cache_dir": "SPENDBOARD_CACHE_DIR",
    "first_expense_month": "SPENDBOARD_FIRST_EXPENSE_MONTH",
    "both_amounts_policy": "SPENDBOARD_BOTH_AMOUNTS_POLICY",
}


class Settings(BaseModel):
    """Resolved loader configuration."""

    model_config = ConfigDict(frozen=True)

    base_currency: str = "EUR"
    quote_currency: str = "BRL"
    api_base: str = "https://data-api.ecb.europa.eu/service/data/EXR"
    timeout_sec: float = 10.0
    min_interval_sec: float = 0.0
    rates_start_year: int | None = None
    cache_dir: Path | None = None
    first_expense_month: str | None = None
    both_amounts_policy: Literal["prefer-base", "strict"] = "prefer-base"

    @field_validator("base_currency", "quote_currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        code = value.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"invalid currency code: {value!r}")
        return code

    @field_validator("timeout_sec")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_sec must be positive")
        return value

    @field_validator("min_interval_sec")
    @classmethod
    def _non_negative_interval(cls, value: float) -> float:
        if value < 0:
            raise ValueError("min_interval_sec cannot be negative")
        return value

    @property
    def series_key(self) -> str:
        """ECB EXR series key for daily reference rates of the pair."""

        return f"D.{self.quote_currency}.{self.base_currency}.SP00.A"


@dataclass(frozen=True)
class RateWindow:
    """Inclusive year range the rate loaders should cover."""

    start_year: int
    end_year: int

    def years(self) -> list[int]:
        return list(range(self.start_year, self.end_year + 1))


@dataclass(frozen=True)
class Unconfigured:
    """Marker returned when a loader lacks the configuration it needs."""

    reason: str


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"settings file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"settings file must contain a mapping: {path}")
    return data


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(data)
    for field, env_name in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        merged[field] = raw.strip()
    return merged


def load_settings(path: str | Path | None = None, *, use_dotenv: bool = True) -> Settings:
    """Load settings from YAML and apply environment overrides."""

    if use_dotenv:
        load_dotenv(override=False)
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    raw = _apply_env(_load_yaml(settings_path))
    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid settings in {settings_path}: {exc}") from exc


def resolve_rate_window(
    settings: Settings,
    today: date | None = None,
    *,
    start_year: int | None = None,
    end_year: int | None = None,
) -> RateWindow | Unconfigured:
    """Return the year range to load, or ``Unconfigured`` when it cannot be decided."""

    current = today or date.today()
    start = start_year if start_year is not None else settings.rates_start_year
    end = end_year if end_year is not None else current.year
    if start is None:
        return Unconfigured("rates start year is not configured")
    if start > end:
        return Unconfigured(f"rates start year {start} is after end year {end}")
    return RateWindow(start_year=start, end_year=end)


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "RateWindow",
    "Settings",
    "Unconfigured",
    "load_settings",
    "resolve_rate_window",
]
