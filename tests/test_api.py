import pytest
from fastapi.testclient import TestClient

from ratewatch.main import create_app
from ratewatch.models.constants import CurrencyCode
from ratewatch.services.rate_service import RateController

from tests.fakes import network_down, rate_limited

EUR, USD, JPY = CurrencyCode.EUR, CurrencyCode.USD, CurrencyCode.JPY


@pytest.fixture
def api(settings, provider, clock):
    settings.min_fetch_interval_seconds = 0
    ctl = RateController(settings, provider=provider, clock=clock)
    app = create_app(settings_override=settings, controller=ctl)
    with TestClient(app) as client:
        yield client, ctl


def test_startup_fetches_active_base(api, provider):
    client, _ = api

    body = client.get("/rates").json()

    assert provider.calls == [EUR]
    assert body["base"] == "EUR"
    assert body["change_state"] == "stable"
    assert body["loading"] is False
    assert body["rate_limit_error"] is False
    assert [row["label"] for row in body["display_rates"]] == [
        "HKD",
        "CNY",
        "USD",
        "JPY",
        "GBP",
    ]
    assert body["rates"]["USD"] == pytest.approx(1.08)
    assert body["last_updated"] is not None


def test_health(api):
    client, _ = api
    assert client.get("/health").json() == {
        "status": "ok",
        "base": "EUR",
        "cached_bases": 1,
        "torn_down": False,
    }


def test_change_base(api, provider):
    client, _ = api

    resp = client.put("/rates/base", json={"base": "usd"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["base"] == "USD"
    assert body["previous_base"] is None
    assert "USD" not in [row["label"] for row in body["display_rates"]]
    assert provider.calls == [EUR, USD]


def test_failed_base_change_rolls_back_and_reports(api, provider):
    client, _ = api
    provider.fail(JPY, rate_limited(JPY))
    provider.fail(EUR, network_down(EUR))

    body = client.put("/rates/base", json={"base": "JPY"}).json()

    # EUR is still fresh from startup, so the retry is served from cache
    assert body["base"] == "EUR"
    assert body["change_state"] == "stable"
    assert provider.calls == [EUR, JPY]
    assert client.get("/rates/notifications").json() == []


def test_terminal_failure_is_listed(api, provider, clock):
    client, _ = api
    clock.advance(600)
    provider.fail(USD, network_down(USD))
    provider.fail(EUR, rate_limited(EUR))

    body = client.put("/rates/base", json={"base": "USD"}).json()
    notices = client.get("/rates/notifications").json()

    assert body["base"] == "EUR"
    assert body["rate_limit_error"] is True
    assert len(notices) == 1
    assert notices[0]["failed_base"] == "USD"
    assert notices[0]["restored_base"] == "EUR"


def test_unsupported_base_is_400(api):
    client, _ = api

    resp = client.put("/rates/base", json={"base": "XYZ"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "unsupported_currency"


def test_toggle_displayed(api):
    client, _ = api

    body = client.put("/rates/displayed/jpy", json={"displayed": False}).json()

    assert "JPY" not in body["displayed"]
    assert "JPY" not in [row["label"] for row in body["display_rates"]]


def test_force_refresh(api, provider, clock):
    client, _ = api
    clock.advance(301)

    body = client.post("/rates/refresh").json()

    assert provider.calls == [EUR, EUR]
    assert body["rate_limit_error"] is False


def test_convert(api):
    client, _ = api

    body = client.get("/rates/convert", params={"amount": 100}).json()

    values = {row["label"]: row["value"] for row in body["conversions"]}
    assert body["base"] == "EUR"
    assert values["USD"] == pytest.approx(108.0)
    assert values["GBP"] == pytest.approx(85.0)


def test_convert_rejects_negative_amount(api):
    client, _ = api

    resp = client.get("/rates/convert", params={"amount": -1})

    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


def test_cache_listing(api, clock):
    client, _ = api

    entries = client.get("/rates/cache").json()
    assert [(e["base"], e["fresh"]) for e in entries] == [("EUR", True)]

    clock.advance(301)
    entries = client.get("/rates/cache").json()
    assert entries[0]["fresh"] is False


def test_unknown_route_uses_error_envelope(api):
    client, _ = api

    resp = client.get("/nope")

    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_shutdown_tears_down_controller(settings, provider, clock):
    ctl = RateController(settings, provider=provider, clock=clock)
    with TestClient(create_app(settings_override=settings, controller=ctl)):
        assert not ctl.torn_down
    assert ctl.torn_down
    assert provider.closed
