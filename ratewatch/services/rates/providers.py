from __future__ import annotations

"""Concrete rate providers and factory.

'static' serves a fixed EUR-anchored table so the service runs offline;
'fxratesapi' queries api.fxratesapi.com (free, no key required).
"""
import logging
from typing import Dict, Optional, Sequence

import httpx

from ratewatch.core.config import Settings
from ratewatch.models.constants import CurrencyCode
from ratewatch.models.rates import RateTable, build_rate_table
from ratewatch.services.http_client import HttpError, get_json
from .base import RateProvider
from .errors import NetworkFailureError, classify_status

logger = logging.getLogger("ratewatch.provider")

# Units of currency per 1 EUR
_STATIC_EUR_RATES: Dict[CurrencyCode, float] = {
    CurrencyCode.EUR: 1.0,
    CurrencyCode.HKD: 8.45,
    CurrencyCode.CNY: 7.78,
    CurrencyCode.USD: 1.08,
    CurrencyCode.JPY: 161.2,
    CurrencyCode.GBP: 0.85,
}


class StaticRateProvider(RateProvider):
    name = "static"

    async def latest(  # type: ignore[override]
        self, base: CurrencyCode, symbols: Sequence[CurrencyCode]
    ) -> RateTable:
        anchor = _STATIC_EUR_RATES[base]
        return {
            code: round(_STATIC_EUR_RATES[code] / anchor, 6)
            for code in symbols
            if code is not base
        }


class FxRatesApiProvider(RateProvider):
    """GET <base_url>/latest?base=<code>&symbols=<a,b,c> -> {"rates": {...}}."""

    name = "fxratesapi"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._url = f"{base_url.rstrip('/')}/latest"
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def latest(  # type: ignore[override]
        self, base: CurrencyCode, symbols: Sequence[CurrencyCode]
    ) -> RateTable:
        params = {
            "base": base.value,
            "symbols": ",".join(c.value for c in symbols if c is not base),
        }
        try:
            data = await get_json(
                self._client, self._url, params=params, timeout=self._timeout
            )
        except HttpError as e:
            raise classify_status(base, str(e), e.status_code) from e
        rates = data.get("rates")
        if not isinstance(rates, dict):
            raise NetworkFailureError(base, f"response for {base.value} has no rates")
        table = build_rate_table(base, rates)
        missing = [c.value for c in symbols if c is not base and c not in table]
        if missing:
            logger.debug("provider omitted %s for base %s", missing, base.value)
        return table

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_PROVIDER_REGISTRY = {
    "static": StaticRateProvider,
    "fxratesapi": FxRatesApiProvider,
}


def make_rate_provider(settings: Settings) -> RateProvider:
    cls = _PROVIDER_REGISTRY.get(settings.rate_provider)
    if not cls:
        raise ValueError(f"Unknown rate provider kind '{settings.rate_provider}'")
    if cls is FxRatesApiProvider:
        return FxRatesApiProvider(
            settings.provider_url, timeout=settings.http_timeout_seconds
        )
    return cls()
