from __future__ import annotations

"""Scheduled background work with explicit cancellation.

ScheduledTask wraps an asyncio task and a CancellationToken. Periodic tasks
wait on the token between runs, so cancel() wakes them immediately instead of
letting a sleep run out.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("ratewatch.scheduler")

Sleeper = Callable[[float], Awaitable[None]]


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """Wait up to `seconds`; return False if cancelled meanwhile."""
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False


class ScheduledTask:
    def __init__(
        self,
        name: str,
        job: Callable[[CancellationToken], Awaitable[None]],
    ):
        self.name = name
        self._job = job
        self.token = CancellationToken()
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def periodic(
        cls,
        name: str,
        interval: float,
        tick: Callable[[], Awaitable[None]],
    ) -> "ScheduledTask":
        async def loop(token: CancellationToken) -> None:
            while await token.sleep(interval):
                try:
                    await tick()
                except Exception:
                    logger.exception("periodic task %s tick failed", name)

        return cls(name, loop)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "ScheduledTask":
        if self.running:
            return self
        self._task = asyncio.get_running_loop().create_task(
            self._job(self.token), name=self.name
        )
        return self

    def cancel(self) -> None:
        self.token.cancel()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        self.cancel()
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._task, timeout=1.0)
        except asyncio.TimeoutError:
            # Blocked in a network call; results are discarded after teardown.
            self._task.cancel()
            logger.debug("task %s did not stop in time; cancelled", self.name)
