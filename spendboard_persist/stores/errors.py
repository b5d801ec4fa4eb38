"""Exceptions raised by the period cache."""

from __future__ import annotations

from spendboard.core.errors import SpendboardError


class CacheError(SpendboardError):
    """Base exception type for cache-layer failures."""


class MalformedCacheError(CacheError):
    """Raised when a cache file exists but cannot be read or parsed."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class CacheWriteError(CacheError):
    """Raised when a cache file cannot be persisted."""
