"""Displayed-currency selection helpers.

The selection is a full map over the supported currencies (True = shown).
Persisting it is the caller's business; these helpers only derive new maps.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping

from ratewatch.models.constants import SUPPORTED_CURRENCIES, CurrencyCode

Selection = Dict[CurrencyCode, bool]


def default_selection(base: CurrencyCode) -> Selection:
    return {c: c is not base for c in SUPPORTED_CURRENCIES}


def for_base(current: Mapping[CurrencyCode, bool], base: CurrencyCode) -> Selection:
    """Selection after `base` becomes active.

    The base is hidden; currencies without an entry are added as shown;
    existing choices are kept.
    """
    out: Selection = {}
    for c in SUPPORTED_CURRENCIES:
        if c is base:
            out[c] = False
        else:
            out[c] = current.get(c, True)
    return out


def displayed_set(selection: Mapping[CurrencyCode, bool]) -> FrozenSet[CurrencyCode]:
    return frozenset(c for c, shown in selection.items() if shown)
