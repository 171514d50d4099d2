import pytest

from ratewatch.models.constants import CurrencyCode, UnsupportedCurrencyError
from ratewatch.models.rates import DisplayRate, build_rate_table
from ratewatch.services.rates.conversion import convert_amount, round_amount
from ratewatch.services.rates.display import project
from ratewatch.services.selection import default_selection, displayed_set, for_base

EUR, HKD, CNY, USD, JPY, GBP = (
    CurrencyCode.EUR,
    CurrencyCode.HKD,
    CurrencyCode.CNY,
    CurrencyCode.USD,
    CurrencyCode.JPY,
    CurrencyCode.GBP,
)


def test_projection_follows_enumeration_order_not_input_order():
    rows = project(EUR, [GBP, USD, HKD], {USD: 1.08, GBP: 0.85, HKD: 8.45})
    assert [r.label for r in rows] == [HKD, USD, GBP]


def test_projection_is_deterministic():
    args = (USD, {EUR, JPY, CNY}, {EUR: 0.92, JPY: 149.0, CNY: 7.2})
    assert project(*args) == project(*args)


def test_projection_excludes_active_base_even_when_displayed():
    rows = project(USD, {USD, EUR}, {EUR: 0.92})
    assert [r.label for r in rows] == [EUR]


def test_missing_rate_yields_row_with_none():
    rows = project(EUR, {USD, JPY}, {USD: 1.08})
    assert rows == [DisplayRate(label=USD, value=1.08), DisplayRate(label=JPY, value=None)]


def test_projection_without_table():
    rows = project(EUR, {USD}, None)
    assert rows == [DisplayRate(label=USD, value=None)]


def test_default_selection_shows_all_but_base():
    sel = default_selection(EUR)
    assert sel[EUR] is False
    assert displayed_set(sel) == {HKD, CNY, USD, JPY, GBP}


def test_base_change_hides_new_base_and_keeps_other_choices():
    sel = default_selection(EUR)
    sel[JPY] = False

    after = for_base(sel, USD)

    assert after[USD] is False
    assert after[JPY] is False
    assert after[EUR] is False
    assert after[GBP] is True


def test_base_change_fills_missing_entries_as_shown():
    after = for_base({USD: False}, EUR)
    assert displayed_set(after) == {HKD, CNY, JPY, GBP}


def test_rate_table_builder_drops_junk():
    table = build_rate_table(
        EUR, {"USD": 1.08, "EUR": 1.0, "JPY": "161", "GBP": 0, "CNY": True, "ZZZ": 3}
    )
    assert table == {USD: 1.08}


def test_currency_parse_is_case_insensitive():
    assert CurrencyCode.parse(" usd ") is USD
    assert CurrencyCode.parse(GBP) is GBP
    with pytest.raises(UnsupportedCurrencyError) as info:
        CurrencyCode.parse("XYZ")
    assert info.value.code == "XYZ"


def test_convert_amount_keeps_missing_rows():
    rows = [DisplayRate(label=USD, value=1.08), DisplayRate(label=JPY, value=None)]
    out = convert_amount(2.5, rows)
    assert out == [DisplayRate(label=USD, value=2.7), DisplayRate(label=JPY, value=None)]


def test_convert_amount_rejects_negative():
    with pytest.raises(ValueError):
        convert_amount(-1, [])


def test_round_amount_half_up():
    assert round_amount(0.00005) == 0.0001
    assert round_amount(1.23456789, places=2) == 1.23
