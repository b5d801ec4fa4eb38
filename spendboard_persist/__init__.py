"""On-disk persistence helpers for spendboard rate caches."""

from .schemas.rates import CachedPeriod
from .stores.errors import CacheError, CacheWriteError, MalformedCacheError
from .stores.period_cache import PeriodCache

__all__ = [
    "CacheError",
    "CacheWriteError",
    "CachedPeriod",
    "MalformedCacheError",
    "PeriodCache",
]
