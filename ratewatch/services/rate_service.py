"""Rate controller facade.

Wires the cache store, limiter, fetch orchestrator, preloader and rollback
machine around one ControllerState, and exposes the collaborator surface:

Inbound:
    - set_active_base(code)      base change (rollback cascade applies)
    - set_displayed(code, bool)  toggle a displayed currency
    - request_force_refresh()    refresh bypassing the limiter
    - teardown()                 stop timers; later results are discarded

Outbound (read-only properties):
    rates, display_rates, loading, rate_limit_error, last_updated,
    notifications

All mutation happens on one asyncio loop. Background work (periodic refresh,
preload pass) runs as ScheduledTask objects cancelled by teardown().
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from ratewatch.core.config import Settings
from ratewatch.core.logging import triggered_by
from ratewatch.models.constants import SUPPORTED_CURRENCIES, CurrencyCode
from ratewatch.models.rates import (
    ActiveSelection,
    CacheEntry,
    ControllerState,
    DisplayRate,
    FailureNotice,
    FetchResult,
    RatesSnapshot,
    RateTable,
)
from ratewatch.services.rates.base import RateProvider
from ratewatch.services.rates.cache_service import RateCacheStore
from ratewatch.services.rates.conversion import convert_amount
from ratewatch.services.rates.display import project
from ratewatch.services.rates.errors import RateFetchError
from ratewatch.services.rates.limiter import RateLimiter
from ratewatch.services.rates.orchestrator import FetchOrchestrator
from ratewatch.services.rates.preload import PreloadReport, PreloadScheduler
from ratewatch.services.rates.providers import make_rate_provider
from ratewatch.services.rates.rollback import (
    BaseChangeController,
    BaseChangeInProgressError,
    ChangeState,
)
from ratewatch.services.scheduling import ScheduledTask, Sleeper
from ratewatch.services.selection import (
    Selection,
    default_selection,
    displayed_set,
    for_base,
)

logger = logging.getLogger("ratewatch.controller")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateController:
    def __init__(
        self,
        settings: Settings,
        *,
        provider: Optional[RateProvider] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Optional[Sleeper] = None,
        selection: Optional[Selection] = None,
    ):
        self.settings = settings
        self.clock = clock
        self.provider = provider or make_rate_provider(settings)
        base = settings.default_base_currency
        self.state = ControllerState(active_base=base)
        self.cache = RateCacheStore(
            timedelta(seconds=settings.rates_cache_ttl_seconds)
        )
        self.limiter = RateLimiter(
            timedelta(seconds=settings.min_fetch_interval_seconds)
        )
        self.orchestrator = FetchOrchestrator(
            self.provider, self.cache, self.limiter, self.state
        )
        self.preloader = PreloadScheduler(
            self.orchestrator, clock, settings.preload_delay_seconds, sleep=sleep
        )
        self.changes = BaseChangeController(
            self.orchestrator,
            self.state,
            clock,
            on_result=self._apply,
            on_rollback=self._restore,
            on_failure=self._notify,
            alive=lambda: not self._torn_down,
        )
        self._prior_selection: Optional[Selection] = None
        self._selection: Selection = for_base(
            selection or default_selection(base), base
        )
        self._display: List[DisplayRate] = []
        self.notifications: List[FailureNotice] = []
        self._timer: Optional[ScheduledTask] = None
        self._preload: Optional[ScheduledTask] = None
        self._torn_down = False
        self._recompute()

    # Observable state ------------------------------------------------
    @property
    def active_base(self) -> CurrencyCode:
        return self.state.active_base

    @property
    def previous_base(self) -> Optional[CurrencyCode]:
        return self.state.previous_base

    @property
    def change_state(self) -> ChangeState:
        return self.changes.phase

    @property
    def rates(self) -> RateTable:
        return dict(self.state.rates)

    @property
    def display_rates(self) -> List[DisplayRate]:
        return list(self._display)

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def rate_limit_error(self) -> bool:
        return self.state.rate_limit_error

    @property
    def last_updated(self) -> Optional[datetime]:
        return self.state.last_updated

    @property
    def selection(self) -> Dict[CurrencyCode, bool]:
        return dict(self._selection)

    @property
    def active_selection(self) -> ActiveSelection:
        return ActiveSelection(
            base=self.state.active_base, displayed=displayed_set(self._selection)
        )

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def snapshot(self) -> RatesSnapshot:
        return RatesSnapshot(
            base=self.state.active_base,
            previous_base=self.state.previous_base,
            change_state=self.changes.phase.value,
            rates=self.rates,
            display_rates=self.display_rates,
            displayed=[c for c in SUPPORTED_CURRENCIES if self._selection.get(c)],
            loading=self.state.loading,
            rate_limit_error=self.state.rate_limit_error,
            last_updated=self.state.last_updated,
        )

    def cache_entries(self) -> List[CacheEntry]:
        return list(self.cache)

    def convert(self, amount: float) -> List[DisplayRate]:
        return convert_amount(amount, self._display)

    # Lifecycle -------------------------------------------------------
    async def start(self) -> None:
        """Initial fetch, periodic refresh timer and (optionally) a preload pass."""
        with triggered_by("startup"):
            await self.refresh()
        if self._torn_down:
            return
        self._timer = ScheduledTask.periodic(
            "rates-refresh", self.settings.refresh_interval_seconds, self._tick
        ).start()
        if self.settings.preload_on_startup:
            self.start_preload()

    def start_preload(self) -> ScheduledTask:
        if self._preload is not None and self._preload.running:
            return self._preload

        async def job(token) -> None:
            await self.preloader.run(lambda: self.state.active_base, token)

        self._preload = ScheduledTask("rates-preload", job).start()
        return self._preload

    async def preload(self) -> PreloadReport:
        """Run one preload pass inline."""
        return await self.preloader.run(lambda: self.state.active_base)

    async def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        for task in (self._timer, self._preload):
            if task is not None:
                await task.stop()
        await self.provider.aclose()
        logger.info("rate controller torn down")

    # Collaborator operations -----------------------------------------
    async def refresh(self) -> Optional[FetchResult]:
        """Periodic / manual refresh of the active base. Never rolls back."""
        if self._torn_down:
            return None
        base = self.state.active_base
        try:
            result = await self.orchestrator.fetch(base, self.clock())
        except RateFetchError as e:
            if e.fallback is not None and not self._torn_down:
                self._apply_entry(e.fallback)
            return None
        if result.succeeded:
            self._apply(result)
            self.changes.note_success(result.base)
        return result

    async def request_force_refresh(self) -> Optional[FetchResult]:
        self.limiter.reset()
        return await self.refresh()

    async def set_active_base(self, code: "str | CurrencyCode") -> ChangeState:
        new_base = CurrencyCode.parse(code)
        if self._torn_down:
            return self.changes.phase
        if new_base is self.state.active_base:
            await self.refresh()
            return self.changes.phase
        if self.changes.busy:
            raise BaseChangeInProgressError(
                f"base change to {self.state.active_base.value} still in progress"
            )
        logger.info(
            "base change %s -> %s", self.state.active_base.value, new_base.value
        )
        if self.changes.phase is ChangeState.STABLE:
            # A pending change keeps the selection of the last settled base.
            self._prior_selection = dict(self._selection)
        self._selection = for_base(self._selection, new_base)
        self._recompute()
        return await self.changes.change_base(new_base)

    def set_displayed(
        self, code: "str | CurrencyCode", shown: bool
    ) -> List[DisplayRate]:
        currency = CurrencyCode.parse(code)
        self._selection[currency] = bool(shown)
        self._recompute()
        return self.display_rates

    # Internal --------------------------------------------------------
    async def _tick(self) -> None:
        with triggered_by("timer"):
            await self.refresh()

    def _apply(self, result: FetchResult) -> None:
        if self._torn_down or result.rates is None:
            return
        if result.base is not self.state.active_base:
            # Resolved after the user moved on; the cache already has it.
            return
        self.state.rates = dict(result.rates)
        self.state.last_updated = result.fetched_at
        self._recompute()

    def _apply_entry(self, entry: CacheEntry) -> None:
        if entry.base is not self.state.active_base:
            return
        self.state.rates = dict(entry.rates)
        self.state.last_updated = entry.fetched_at
        self._recompute()

    def _restore(self, restored: CurrencyCode) -> None:
        # Undo the hide-the-new-base step of the failed change.
        self._selection = for_base(self._prior_selection or self._selection, restored)
        entry = self.cache.get(restored)
        if entry is not None:
            self._apply_entry(entry)
        else:
            self._recompute()

    def _notify(self, notice: FailureNotice) -> None:
        self.notifications.append(notice)

    def _recompute(self) -> None:
        self._display = project(
            self.state.active_base, displayed_set(self._selection), self.state.rates
        )
