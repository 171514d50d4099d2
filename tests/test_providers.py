import asyncio

import httpx
import pytest

from ratewatch.core.config import Settings
from ratewatch.models.constants import CurrencyCode
from ratewatch.services.rates.errors import NetworkFailureError, RateLimitedError
from ratewatch.services.rates.providers import (
    FxRatesApiProvider,
    StaticRateProvider,
    make_rate_provider,
)

EUR, USD, JPY, GBP = (
    CurrencyCode.EUR,
    CurrencyCode.USD,
    CurrencyCode.JPY,
    CurrencyCode.GBP,
)
OTHERS_THAN_EUR = [c for c in CurrencyCode if c is not EUR]


def _latest(handler, base=EUR, symbols=OTHERS_THAN_EUR):
    async def call():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            provider = FxRatesApiProvider("https://fx.example/", client=client)
            return await provider.latest(base, symbols)

    return asyncio.run(call())


def test_request_shape_and_payload_filtering():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "base": "EUR",
                "rates": {"USD": 1.08, "JPY": 161.2, "EUR": 1, "XXX": 2.0, "GBP": -1},
            },
        )

    table = _latest(handler)

    assert seen["path"] == "/latest"
    assert seen["params"] == {"base": "EUR", "symbols": "HKD,CNY,USD,JPY,GBP"}
    assert table == {USD: 1.08, JPY: 161.2}


@pytest.mark.parametrize("status", [429, 403])
def test_throttling_statuses_are_rate_limited(status):
    with pytest.raises(RateLimitedError) as info:
        _latest(lambda request: httpx.Response(status, json={"error": "slow down"}))

    assert info.value.status_code == status
    assert info.value.base is EUR


@pytest.mark.parametrize("status", [400, 404, 500, 503])
def test_other_statuses_are_network_failures(status):
    with pytest.raises(NetworkFailureError) as info:
        _latest(lambda request: httpx.Response(status))

    assert info.value.status_code == status


def test_transport_error_is_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkFailureError) as info:
        _latest(handler)

    assert info.value.status_code is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>busy</html>"),
        httpx.Response(200, json={"success": False}),
        httpx.Response(200, json=["EUR"]),
    ],
)
def test_malformed_bodies_are_network_failures(response):
    with pytest.raises(NetworkFailureError):
        _latest(lambda request: response)


def test_static_provider_rebases_its_table():
    provider = StaticRateProvider()

    from_usd = asyncio.run(provider.latest(USD, [EUR, USD, GBP]))

    assert set(from_usd) == {EUR, GBP}
    assert from_usd[EUR] == pytest.approx(1 / 1.08, rel=1e-6)
    assert from_usd[GBP] == pytest.approx(0.85 / 1.08, rel=1e-6)


def test_factory_selects_provider_from_settings():
    static = make_rate_provider(Settings(rate_provider="static"))
    assert isinstance(static, StaticRateProvider)

    http = make_rate_provider(
        Settings(
            rate_provider="fxratesapi", rate_provider_base_url="https://fx.example/"
        )
    )
    assert isinstance(http, FxRatesApiProvider)
    asyncio.run(http.aclose())


def test_factory_rejects_unknown_kind():
    settings = Settings(rate_provider="static")
    settings.rate_provider = "carrier-pigeon"
    with pytest.raises(ValueError):
        make_rate_provider(settings)
