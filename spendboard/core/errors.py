"""Custom exceptions used across spendboard."""


class SpendboardError(Exception):
    """Base error for the application."""


class ConfigError(SpendboardError):
    """Configuration related error."""


class RateError(SpendboardError):
    """Base error for exchange rate retrieval and resolution."""


class SourceUnavailableError(RateError):
    """Raised when the rate source cannot be reached or answers with an error status."""

    def __init__(self, message: str, *, period: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.period = period
        self.status_code = status_code


class SourceTimeoutError(SourceUnavailableError):
    """Raised when a rate source request exceeds its timeout."""


class NoDataError(RateError):
    """Raised when the source answered but yielded no parseable observations."""


class NoRateAvailableError(RateError):
    """Raised when no observation exists on or before the requested date."""

    def __init__(self, message: str, *, requested_date: str | None = None) -> None:
        super().__init__(message)
        self.requested_date = requested_date


class UnsupportedCurrencyError(RateError):
    """Raised when a conversion is requested for a currency without a rate series."""


class AmbiguousAmountError(SpendboardError):
    """Raised when a transaction carries both amounts and the strict policy is active."""
