from __future__ import annotations

"""Rate provider abstraction.

A provider answers one question: the latest rates for a base currency against
a list of quote currencies.
"""
from abc import ABC, abstractmethod
from typing import Sequence

from ratewatch.models.constants import CurrencyCode
from ratewatch.models.rates import RateTable


class RateProvider(ABC):
    name: str = "abstract"

    @abstractmethod
    async def latest(
        self, base: CurrencyCode, symbols: Sequence[CurrencyCode]
    ) -> RateTable:
        """Return quote-currency units per 1 unit of base.

        Raises RateFetchError subclasses on failure.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources; no-op by default."""
