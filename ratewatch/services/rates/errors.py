from __future__ import annotations

from typing import Optional

from ratewatch.models.constants import CurrencyCode
from ratewatch.models.rates import CacheEntry

RATE_LIMIT_STATUSES = frozenset({403, 429})


class RateFetchError(Exception):
    """A fetch for `base` failed; never fatal to the process.

    `fallback` carries the last cached entry for the base (fresh or stale)
    when the orchestrator chose to surface it.
    """

    kind = "fetch_failed"

    def __init__(
        self,
        base: CurrencyCode,
        message: str,
        *,
        status_code: Optional[int] = None,
        fallback: Optional[CacheEntry] = None,
    ):
        super().__init__(message)
        self.base = base
        self.status_code = status_code
        self.fallback = fallback


class RateLimitedError(RateFetchError):
    kind = "rate_limited"


class NetworkFailureError(RateFetchError):
    kind = "network_failure"


def classify_status(
    base: CurrencyCode, message: str, status_code: Optional[int]
) -> RateFetchError:
    if status_code in RATE_LIMIT_STATUSES:
        return RateLimitedError(base, message, status_code=status_code)
    return NetworkFailureError(base, message, status_code=status_code)
