"""Domain types for the rate controller."""

from .constants import (
    CurrencyCode,
    SUPPORTED_CURRENCIES,
    UnsupportedCurrencyError,
)  # re-export
from .rates import (
    ActiveSelection,
    CacheEntry,
    ControllerState,
    DisplayRate,
    FailureNotice,
    FetchResult,
    FetchStatus,
    RateTable,
    build_rate_table,
)

__all__ = [
    "CurrencyCode",
    "SUPPORTED_CURRENCIES",
    "UnsupportedCurrencyError",
    "ActiveSelection",
    "CacheEntry",
    "ControllerState",
    "DisplayRate",
    "FailureNotice",
    "FetchResult",
    "FetchStatus",
    "RateTable",
    "build_rate_table",
]
