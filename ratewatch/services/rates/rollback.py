from __future__ import annotations

"""Base-change rollback and single retry.

    STABLE --change--> CHANGING --ok--> STABLE
                          |
                        fail
                          v
                     ROLLING_BACK --> RETRYING --ok--> STABLE
                                          |
                                        fail --> terminal notice, STABLE

Only base changes enter this machine. Periodic refreshes, force refreshes
and preloads keep the previous rates on failure and never roll back.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ratewatch.core.logging import triggered_by
from ratewatch.models.constants import CurrencyCode
from ratewatch.models.rates import ControllerState, FailureNotice, FetchResult
from .errors import RateFetchError
from .orchestrator import FetchOrchestrator

logger = logging.getLogger("ratewatch.rollback")


class ChangeState(str, Enum):
    STABLE = "stable"
    CHANGING = "changing"
    ROLLING_BACK = "rolling_back"
    RETRYING = "retrying"


class BaseChangeInProgressError(RuntimeError):
    pass


class BaseChangeController:
    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        state: ControllerState,
        clock: Callable[[], datetime],
        *,
        on_result: Callable[[FetchResult], None],
        on_rollback: Callable[[CurrencyCode], None],
        on_failure: Callable[[FailureNotice], None],
        alive: Callable[[], bool] = lambda: True,
    ):
        self.orchestrator = orchestrator
        self.state = state
        self.clock = clock
        self._on_result = on_result
        self._on_rollback = on_rollback
        self._on_failure = on_failure
        self._alive = alive
        self.phase = ChangeState.STABLE
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def _enter(self, phase: ChangeState) -> None:
        logger.debug("base change: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def _settle(self) -> None:
        self.state.previous_base = None
        self._enter(ChangeState.STABLE)

    async def change_base(self, new_base: CurrencyCode) -> ChangeState:
        if self._busy:
            raise BaseChangeInProgressError(
                f"base change to {self.state.active_base.value} still in progress"
            )
        # A change still waiting on its first success keeps the original
        # known-good base as the rollback target.
        if self.phase is ChangeState.CHANGING and self.state.previous_base:
            known_good = self.state.previous_base
        else:
            known_good = self.state.active_base
        self.state.previous_base = known_good
        self.state.active_base = new_base
        self._enter(ChangeState.CHANGING)
        self._busy = True
        try:
            try:
                result = await self.orchestrator.fetch(new_base, self.clock())
            except RateFetchError as e:
                if not self._alive():
                    return self.phase
                await self._roll_back(e)
                return self.phase
            if not self._alive():
                return self.phase
            if result.succeeded:
                self._on_result(result)
                self._settle()
            else:
                logger.info(
                    "fetch for new base %s skipped; awaiting next refresh",
                    new_base.value,
                )
            return self.phase
        finally:
            self._busy = False

    def note_success(self, base: CurrencyCode) -> None:
        """A non-change path delivered rates for the active base."""
        if self.phase is ChangeState.CHANGING and base is self.state.active_base:
            self._settle()

    async def _roll_back(self, error: RateFetchError) -> None:
        failed = self.state.active_base
        restored = self.state.previous_base
        self._enter(ChangeState.ROLLING_BACK)
        if restored is None:
            # Nothing to return to; leave the failed base active.
            logger.warning("no previous base to restore after %s failed", failed.value)
            self._enter(ChangeState.STABLE)
            return
        logger.warning(
            "fetch for %s failed (%s); rolling back to %s",
            failed.value,
            error.kind,
            restored.value,
        )
        self.state.active_base = restored
        self.state.previous_base = None
        self._on_rollback(restored)
        self._enter(ChangeState.RETRYING)
        await self._retry(failed, restored)

    async def _retry(self, failed: CurrencyCode, restored: CurrencyCode) -> None:
        if self.phase is not ChangeState.RETRYING:
            raise RuntimeError(f"retry requested while {self.phase.value}")
        notice: Optional[FailureNotice] = None
        with triggered_by("retry"):
            try:
                # The failed attempt just consumed the limiter interval.
                result = await self.orchestrator.fetch(
                    restored, self.clock(), use_limiter=False
                )
            except RateFetchError as e:
                notice = FailureNotice(
                    failed_base=failed,
                    restored_base=restored,
                    reason=str(e),
                    at=self.clock(),
                )
            else:
                if self._alive() and result.succeeded:
                    self._on_result(result)
        self._enter(ChangeState.STABLE)
        if notice is not None and self._alive():
            logger.error(notice.message)
            self._on_failure(notice)
