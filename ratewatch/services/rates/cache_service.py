from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterator, Optional

from ratewatch.models.constants import CurrencyCode
from ratewatch.models.rates import CacheEntry, RateTable

"""TTL rate cache store.

Purpose:
    Hold the last successfully fetched rate table per base currency so the
    controller and the preloader can avoid hitting the provider while a table
    is still fresh.

Design:
    - One CacheEntry per base ever fetched; put() overwrites (last write wins).
      Tables are stored whole; a partial table never merges into an older one.
    - Entries are never evicted. Freshness is decided at read time with
      is_fresh(), so a stale entry stays available as a rate-limit fallback.
    - Process-lifetime only; a restart starts cold.
"""


class RateCacheStore:
    def __init__(self, ttl: timedelta):
        self.ttl = ttl
        self._entries: Dict[CurrencyCode, CacheEntry] = {}

    def get(self, base: CurrencyCode) -> Optional[CacheEntry]:
        return self._entries.get(base)

    @staticmethod
    def is_fresh(entry: CacheEntry, now: datetime, ttl: timedelta) -> bool:
        return now - entry.fetched_at < ttl

    def get_fresh(self, base: CurrencyCode, now: datetime) -> Optional[CacheEntry]:
        entry = self._entries.get(base)
        if entry and self.is_fresh(entry, now, self.ttl):
            return entry
        return None

    def put(self, base: CurrencyCode, rates: RateTable, now: datetime) -> CacheEntry:
        entry = CacheEntry(
            base=base,
            rates={c: r for c, r in rates.items() if c is not base},
            fetched_at=now,
        )
        self._entries[base] = entry
        return entry

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)
