from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel

from .constants import CurrencyCode

RateTable = Dict[CurrencyCode, float]


def build_rate_table(base: CurrencyCode, raw: Mapping[str, object]) -> RateTable:
    """Keep supported, positive, non-base quotes from a provider payload.

    Unknown codes and non-numeric values are dropped; the base never quotes
    itself.
    """
    table: RateTable = {}
    for code in CurrencyCode:
        if code is base:
            continue
        value = raw.get(code.value)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if value > 0:
            table[code] = float(value)
    return table


@dataclass(frozen=True)
class CacheEntry:
    base: CurrencyCode
    rates: RateTable
    fetched_at: datetime


@dataclass(frozen=True)
class ActiveSelection:
    base: CurrencyCode
    displayed: frozenset = field(default_factory=frozenset)


class FetchStatus(str, Enum):
    FETCHED = "fetched"
    CACHED = "cached"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FetchResult:
    base: CurrencyCode
    status: FetchStatus
    rates: Optional[RateTable] = None
    fetched_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.status is not FetchStatus.SKIPPED


@dataclass
class ControllerState:
    """Mutable controller state shared by the orchestrator and rollback logic."""

    active_base: CurrencyCode
    previous_base: Optional[CurrencyCode] = None
    rate_limit_error: bool = False
    loading: bool = False
    rates: RateTable = field(default_factory=dict)
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class FailureNotice:
    failed_base: CurrencyCode
    restored_base: CurrencyCode
    reason: str
    at: datetime

    @property
    def message(self) -> str:
        return (
            f"Could not load rates for {self.failed_base.value}; "
            f"restored {self.restored_base.value} but its refresh also failed: {self.reason}"
        )


# API models ------------------------------------------------------------


class DisplayRate(BaseModel):
    label: CurrencyCode
    value: Optional[float] = None


class RatesSnapshot(BaseModel):
    base: CurrencyCode
    previous_base: Optional[CurrencyCode] = None
    change_state: str
    rates: Dict[CurrencyCode, float]
    display_rates: List[DisplayRate]
    displayed: List[CurrencyCode]
    loading: bool
    rate_limit_error: bool
    last_updated: Optional[datetime] = None


class FailureNoticeOut(BaseModel):
    failed_base: CurrencyCode
    restored_base: CurrencyCode
    reason: str
    at: datetime
    message: str

    @classmethod
    def from_notice(cls, notice: FailureNotice) -> "FailureNoticeOut":
        return cls(
            failed_base=notice.failed_base,
            restored_base=notice.restored_base,
            reason=notice.reason,
            at=notice.at,
            message=notice.message,
        )


class CacheEntryOut(BaseModel):
    base: CurrencyCode
    fetched_at: datetime
    fresh: bool
    rates: Dict[CurrencyCode, float]


class ConversionOut(BaseModel):
    base: CurrencyCode
    amount: float
    conversions: List[DisplayRate]
