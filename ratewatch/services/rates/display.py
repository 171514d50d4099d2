from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from ratewatch.models.constants import SUPPORTED_CURRENCIES, CurrencyCode
from ratewatch.models.rates import DisplayRate


def project(
    active_base: CurrencyCode,
    displayed: Iterable[CurrencyCode],
    rates: Optional[Mapping[CurrencyCode, float]],
) -> List[DisplayRate]:
    """Ordered display rows for the displayed, non-base currencies.

    A displayed currency missing from `rates` keeps its row with value None.
    """
    wanted = set(displayed)
    table = rates or {}
    return [
        DisplayRate(label=code, value=table.get(code))
        for code in SUPPORTED_CURRENCIES
        if code in wanted and code is not active_base
    ]
