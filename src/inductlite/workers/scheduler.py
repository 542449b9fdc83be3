"""Interval schedulers for the export runner and retention reaper.

Each scheduler owns a single asyncio task that sleeps for the interval and
then spawns the tick as its own task, so a slow tick never delays the next
one and ticks may overlap. Stopping cancels the timer loop only; ticks that
are already running are awaited to completion.

Usage:
    scheduler = ExportScheduler(runner, interval_seconds=10)
    scheduler.start()
    ...
    await scheduler.stop()
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional, Set

from ..observability.request_id import generate_request_id, set_request_id

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_INTERVAL_SECONDS = 10.0
DEFAULT_MAINTENANCE_INTERVAL_SECONDS = 24 * 60 * 60


class IntervalScheduler:
    """Runs an async tick every interval_seconds until stopped.

    Args:
        name: Scheduler name used in log records
        tick: Coroutine function invoked once per interval
        interval_seconds: Delay between tick launches
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        name: str,
        tick: Callable[[], Awaitable[object]],
        interval_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.name = name
        self.interval_seconds = interval_seconds
        self._tick = tick
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> int:
        """Number of ticks currently executing."""
        return len(self._in_flight)

    def start(self) -> asyncio.Task:
        """Start the timer loop. Idempotent: returns the running task if already started.

        Must be called from within a running event loop.
        """
        if self.is_running:
            logger.debug("Scheduler already running", extra={"scheduler": self.name})
            return self._task

        logger.info(
            f"Starting scheduler: interval={self.interval_seconds}s",
            extra={"scheduler": self.name},
        )
        self._task = asyncio.create_task(self._loop(), name=f"{self.name}-loop")
        return self._task

    async def stop(self) -> None:
        """Cancel the timer loop and wait for in-flight ticks to finish."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._in_flight:
            logger.info(
                f"Waiting for {len(self._in_flight)} in-flight tick(s)",
                extra={"scheduler": self.name},
            )
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

        logger.info("Scheduler stopped", extra={"scheduler": self.name})

    async def _loop(self) -> None:
        while True:
            await self._sleep(self.interval_seconds)
            tick_task = asyncio.create_task(self._run_tick(), name=f"{self.name}-tick")
            self._in_flight.add(tick_task)
            tick_task.add_done_callback(self._in_flight.discard)

    async def _run_tick(self) -> None:
        set_request_id(generate_request_id())
        try:
            result = await self._tick()
        except Exception as e:
            logger.error(
                f"Scheduler tick failed: {e}",
                exc_info=True,
                extra={"scheduler": self.name},
            )
            return
        self.on_result(result)

    def on_result(self, result: object) -> None:
        """Hook for subclasses to log a tick's return value."""


class ExportScheduler(IntervalScheduler):
    """Invokes ExportRunner.process_next_export_job on every tick."""

    def __init__(
        self,
        runner,
        interval_seconds: float = DEFAULT_EXPORT_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__("export-scheduler", runner.process_next_export_job, interval_seconds, sleep)

    def on_result(self, result: object) -> None:
        if result is not None:
            logger.info(
                f"Processed export job: id={result.id}, status={result.status.value}",
                extra={"scheduler": self.name, "job_id": result.id},
            )


class MaintenanceScheduler(IntervalScheduler):
    """Invokes RetentionReaper.run on every tick (daily by default)."""

    def __init__(
        self,
        reaper,
        interval_seconds: float = DEFAULT_MAINTENANCE_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__("maintenance-scheduler", reaper.run, interval_seconds, sleep)

    def on_result(self, result: object) -> None:
        logger.info(
            f"Maintenance completed: deleted={result.total_records_deleted}, "
            f"errors={result.has_errors}",
            extra={"scheduler": self.name},
        )
