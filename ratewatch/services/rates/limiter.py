from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime.fromtimestamp(0, timezone.utc)


class RateLimiter:
    """Minimum spacing between active-base fetch attempts.

    Only the active-base path consults this; preloading paces itself.
    """

    def __init__(self, min_interval: timedelta):
        self.min_interval = min_interval
        self.last_fetch_at: datetime = EPOCH

    def allow(self, now: datetime) -> bool:
        return now - self.last_fetch_at >= self.min_interval

    def record(self, now: datetime) -> None:
        self.last_fetch_at = now

    def reset(self) -> None:
        self.last_fetch_at = EPOCH
