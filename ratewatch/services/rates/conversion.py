from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from ratewatch.models.rates import DisplayRate

"""Amount conversion over the projected display rows.

Multiplies an amount in the active base by each displayed rate. Rows without
a rate stay in place with value None, mirroring the display projection.
"""


def round_amount(value: float, places: int = 4) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def convert_amount(amount: float, rows: Sequence[DisplayRate]) -> List[DisplayRate]:
    if amount < 0:
        raise ValueError("amount must not be negative")
    out: List[DisplayRate] = []
    for row in rows:
        value: Optional[float] = None
        if row.value is not None:
            value = round_amount(amount * row.value)
        out.append(DisplayRate(label=row.label, value=value))
    return out
