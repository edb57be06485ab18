"""
Cancellable Interval Scheduler

Provides ScheduledLoop, a background task that fires an async callback
every `interval` seconds until stopped. Used for the 1s readiness probe
and the long-interval block heartbeat.

The first callback fires one interval after start(), not immediately.
Missed intervals are skipped rather than queued, so a slow callback (an
RPC probe that hangs until its timeout) never causes a burst of catch-up
calls.

Usage:
    async def probe():
        ...

    loop = ScheduledLoop(1.0, probe, name="daemon-probe")
    loop.start()

    # Later, possibly from inside probe() itself:
    loop.stop()
"""

import asyncio
import logging
from typing import Awaitable, Callable

from .logging_setup import get_component_logger


class ScheduledLoop:
    """
    Interval scheduler on the event loop clock.

    Attributes:
        interval: Seconds between executions
        callback: Async function to call each interval
        name: Name for logging/identification
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "unnamed",
        logger: logging.LoggerAdapter | None = None,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval must be positive, got {interval_seconds}")

        self.interval = interval_seconds
        self.callback = callback
        self.name = name
        self.logger = logger or get_component_logger("scheduler")

        self._next_run: float = 0
        self._running = False
        self._task: asyncio.Task | None = None

        self._skipped_count: int = 0
        self._execution_count: int = 0
        self._error_count: int = 0
        self._last_execution_time: float = 0

    def start(self) -> None:
        """Start the loop in a background task. Must be called inside a running event loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"scheduled:{self.name}")
        self.logger.debug(f"Scheduler '{self.name}' started (interval: {self.interval}s)")

    def stop(self) -> None:
        """
        Stop the loop.

        Safe to call from within the callback: the current execution is
        allowed to finish and no further execution is scheduled.
        """
        if not self._running and self._task is None:
            return

        self._running = False
        task, self._task = self._task, None

        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        self.logger.debug(f"Scheduler '{self.name}' stopped after {self._execution_count} runs")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        self._next_run = loop.time() + self.interval

        while self._running:
            sleep_duration = self._next_run - loop.time()
            if sleep_duration > 0:
                try:
                    await asyncio.sleep(sleep_duration)
                except asyncio.CancelledError:
                    break

            if not self._running:
                break

            try:
                start = loop.time()
                await self.callback()
                self._last_execution_time = loop.time() - start
                self._execution_count += 1
            except Exception as e:
                self._error_count += 1
                self.logger.error(f"Scheduled callback '{self.name}' error: {e}", exc_info=True)

            # Skip missed intervals instead of queueing them
            now = loop.time()
            skipped = 0
            while self._next_run <= now:
                self._next_run += self.interval
                skipped += 1

            if skipped > 1:
                self._skipped_count += skipped - 1
                self.logger.warning(
                    f"Scheduler '{self.name}' skipped {skipped - 1} intervals "
                    f"(execution took {self._last_execution_time:.3f}s)"
                )

    @property
    def running(self) -> bool:
        return self._running

    @property
    def skipped_count(self) -> int:
        """Number of intervals skipped to catch up."""
        return self._skipped_count

    @property
    def execution_count(self) -> int:
        """Total number of successful executions."""
        return self._execution_count

    def get_stats(self) -> dict:
        """Get scheduler statistics for observability."""
        return {
            "name": self.name,
            "interval_s": self.interval,
            "running": self._running,
            "execution_count": self._execution_count,
            "error_count": self._error_count,
            "skipped_count": self._skipped_count,
            "last_execution_s": round(self._last_execution_time, 3),
        }


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        # No running loop (stop() called from synchronous shutdown code)
        return None
