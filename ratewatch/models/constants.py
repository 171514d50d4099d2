"""Supported currency enumeration.

Declaration order is significant: it is the fixed order used for provider
symbol lists, preload scans and display projection.
"""

from enum import Enum
from typing import Tuple


class CurrencyCode(str, Enum):
    EUR = "EUR"
    HKD = "HKD"
    CNY = "CNY"
    USD = "USD"
    JPY = "JPY"
    GBP = "GBP"

    @classmethod
    def parse(cls, value: "str | CurrencyCode") -> "CurrencyCode":
        """Normalize user input ('usd', ' USD ') to a member.

        Raises UnsupportedCurrencyError for codes outside the enumeration.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise UnsupportedCurrencyError(str(value)) from None


class UnsupportedCurrencyError(ValueError):
    def __init__(self, code: str):
        super().__init__(f"unsupported currency '{code}'")
        self.code = code


SUPPORTED_CURRENCIES: Tuple[CurrencyCode, ...] = tuple(CurrencyCode)
