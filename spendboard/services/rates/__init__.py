"""Exchange rate loading, as-of resolution and amount conversion."""

from .asof import AsOfMatch, resolve_as_of, resolve_rate
from .converter import (
    BothAmountsPolicy,
    ConversionResult,
    Transaction,
    TransactionFields,
    convert_amount,
    convert_to_base,
    convert_transactions,
)
from .ecb_client import EcbClient, RequestConfig, parse_observations
from .period_fetcher import PeriodFetcher, parse_period_key
from .rate_limiter import RateLimiter
from .rate_store import RateObservation, RateStore, reduce_to_monthly

__all__ = [
    "AsOfMatch",
    "BothAmountsPolicy",
    "ConversionResult",
    "EcbClient",
    "PeriodFetcher",
    "RateLimiter",
    "RateObservation",
    "RateStore",
    "RequestConfig",
    "Transaction",
    "TransactionFields",
    "convert_amount",
    "convert_to_base",
    "convert_transactions",
    "parse_observations",
    "parse_period_key",
    "reduce_to_monthly",
    "resolve_as_of",
    "resolve_rate",
]
