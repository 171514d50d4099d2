from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ratewatch.core.logging import triggered_by
from ratewatch.models.constants import SUPPORTED_CURRENCIES, CurrencyCode
from ratewatch.services.scheduling import CancellationToken, Sleeper
from .errors import RateFetchError
from .orchestrator import FetchOrchestrator

logger = logging.getLogger("ratewatch.preload")


@dataclass
class PreloadReport:
    fetched: List[CurrencyCode] = field(default_factory=list)
    skipped: List[CurrencyCode] = field(default_factory=list)
    failed: List[CurrencyCode] = field(default_factory=list)
    cancelled: bool = False


class PreloadScheduler:
    """One sequential pass warming the cache for non-active bases.

    Bypasses the rate limiter; paces itself with `delay` seconds between
    network fetches and skips bases whose cache entry is still fresh.
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        clock: Callable[[], datetime],
        delay: float,
        sleep: Optional[Sleeper] = None,
        currencies: Sequence[CurrencyCode] = SUPPORTED_CURRENCIES,
    ):
        self.orchestrator = orchestrator
        self.clock = clock
        self.delay = delay
        self._sleep = sleep
        self.currencies = tuple(currencies)

    def candidates(self, active_base: CurrencyCode) -> List[CurrencyCode]:
        return [c for c in self.currencies if c is not active_base]

    async def run(
        self,
        active_base: Callable[[], CurrencyCode],
        token: Optional[CancellationToken] = None,
    ) -> PreloadReport:
        token = token or CancellationToken()
        report = PreloadReport()
        cache = self.orchestrator.cache
        pending_delay = False
        with triggered_by("preload"):
            for code in self.candidates(active_base()):
                if token.cancelled:
                    report.cancelled = True
                    break
                if code is active_base() or cache.get_fresh(code, self.clock()):
                    report.skipped.append(code)
                    continue
                if pending_delay and not await self._pause(token):
                    report.cancelled = True
                    break
                # The active path may have filled it during the wait.
                if cache.get_fresh(code, self.clock()):
                    report.skipped.append(code)
                    continue
                pending_delay = True
                try:
                    await self.orchestrator.fetch_from_network(code, self.clock())
                except RateFetchError as e:
                    logger.warning("preload for %s failed: %s", code.value, e)
                    report.failed.append(code)
                    continue
                report.fetched.append(code)
        logger.info(
            "preload pass done: fetched=%s skipped=%s failed=%s",
            [c.value for c in report.fetched],
            [c.value for c in report.skipped],
            [c.value for c in report.failed],
        )
        return report

    async def _pause(self, token: CancellationToken) -> bool:
        if self._sleep is None:
            return await token.sleep(self.delay)
        await self._sleep(self.delay)
        return not token.cancelled
