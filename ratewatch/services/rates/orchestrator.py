from __future__ import annotations

"""Fetch orchestration for one base currency at a time.

fetch() is the active-base path: limiter, then cache, then network, with the
loading / rate-limit flags maintained on the shared ControllerState.
fetch_from_network() is the bare network path the preloader uses; it only
touches the cache.

At most one request per base is on the wire. A caller that finds its base
already in flight waits for that request and shares its outcome.
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict

from ratewatch.models.constants import SUPPORTED_CURRENCIES, CurrencyCode
from ratewatch.models.rates import ControllerState, FetchResult, FetchStatus
from .base import RateProvider
from .cache_service import RateCacheStore
from .errors import NetworkFailureError, RateFetchError, RateLimitedError
from .limiter import RateLimiter

logger = logging.getLogger("ratewatch.fetch")


class FetchOrchestrator:
    def __init__(
        self,
        provider: RateProvider,
        cache: RateCacheStore,
        limiter: RateLimiter,
        state: ControllerState,
    ):
        self.provider = provider
        self.cache = cache
        self.limiter = limiter
        self.state = state
        self._in_flight: Dict[CurrencyCode, asyncio.Future] = {}

    def in_flight(self, base: CurrencyCode) -> bool:
        return base in self._in_flight

    async def fetch(
        self, base: CurrencyCode, now: datetime, *, use_limiter: bool = True
    ) -> FetchResult:
        """Fetch rates for `base` on the active path.

        Returns a SKIPPED result when throttled, CACHED for a fresh cache hit,
        FETCHED after a network round trip (its own or one already in flight
        for the same base). Raises RateFetchError on failure, with the cached
        entry attached as fallback for rate-limit failures.
        """
        if use_limiter and not self.limiter.allow(now):
            logger.debug("limiter: skipping fetch for %s", base.value)
            return FetchResult(base=base, status=FetchStatus.SKIPPED)

        joining = base in self._in_flight
        if not joining:
            entry = self.cache.get_fresh(base, now)
            if entry is not None:
                logger.debug("using cached rates for %s", base.value)
                self.state.rate_limit_error = False
                return FetchResult(
                    base=base,
                    status=FetchStatus.CACHED,
                    rates=entry.rates,
                    fetched_at=entry.fetched_at,
                )
            self.limiter.record(now)

        self.state.loading = True
        try:
            result = await self._network(base, now)
        except RateLimitedError as e:
            self.state.rate_limit_error = True
            e.fallback = self.cache.get(base)
            logger.warning(
                "rate limit hit fetching %s (status %s); cached fallback %s",
                base.value,
                e.status_code,
                "available" if e.fallback else "unavailable",
            )
            raise
        except RateFetchError as e:
            logger.warning("rate fetch for %s failed: %s", base.value, e)
            raise
        finally:
            self.state.loading = False
        self.state.rate_limit_error = False
        return result

    async def fetch_from_network(
        self, base: CurrencyCode, now: datetime
    ) -> FetchResult:
        return await self._network(base, now)

    async def _network(self, base: CurrencyCode, now: datetime) -> FetchResult:
        pending = self._in_flight.get(base)
        if pending is not None:
            logger.debug("fetch for %s already in flight; waiting on it", base.value)
            await asyncio.wait([pending])
            if pending.cancelled():
                raise NetworkFailureError(base, "shared request was cancelled")
            return pending.result()

        pending = asyncio.get_running_loop().create_future()
        self._in_flight[base] = pending
        try:
            result = await self._request(base, now)
        except asyncio.CancelledError:
            pending.cancel()
            raise
        except RateFetchError as e:
            pending.set_exception(e)
            # Raised here as well; waiters may never look.
            pending.exception()
            raise
        else:
            pending.set_result(result)
            return result
        finally:
            del self._in_flight[base]

    async def _request(self, base: CurrencyCode, now: datetime) -> FetchResult:
        symbols = [c for c in SUPPORTED_CURRENCIES if c is not base]
        logger.info("fetching rates for base %s", base.value)
        try:
            rates = await self.provider.latest(base, symbols)
        except RateFetchError:
            raise
        except Exception as e:
            raise NetworkFailureError(base, f"provider error: {e}") from e
        entry = self.cache.put(base, rates, now)
        return FetchResult(
            base=base,
            status=FetchStatus.FETCHED,
            rates=entry.rates,
            fetched_at=entry.fetched_at,
        )
