"""In-process periodic runner for the expiry sweep."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from loguru import logger

from src.jellybridge.core.models.lifecycle import SweepReport

SweepCallable = Callable[[], Awaitable[SweepReport]]


class ExpiryScheduler:
    """Runs ``sweep`` on a fixed interval in a single background task.

    Sweeps never overlap: an on-demand :meth:`trigger` waits for a running
    periodic sweep to finish and vice versa.
    """

    def __init__(self, sweep: SweepCallable, interval_seconds: float = 3600, run_on_start: bool = True):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._sweep = sweep
        self._interval = interval_seconds
        self._run_on_start = run_on_start
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self.last_report: SweepReport | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info("Starting account expiry monitoring every {}s", self._interval)
        self._task = asyncio.create_task(self._loop(), name="expiry-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped account expiry monitoring")

    async def trigger(self) -> SweepReport:
        """Run a sweep now; errors propagate to the caller."""
        async with self._lock:
            self.last_report = await self._sweep()
            return self.last_report

    async def _loop(self) -> None:
        if not self._run_on_start:
            await asyncio.sleep(self._interval)
        while True:
            try:
                await self.trigger()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Expiry sweep failed",
                    extra={
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
            await asyncio.sleep(self._interval)
