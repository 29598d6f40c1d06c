"""
Interval scheduler for the GitHub activity relay.

Fires a callback immediately and then at a fixed interval, independent of
how long each run takes. Runs never overlap: a trigger that fires while the
previous run is still in flight is skipped.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class IntervalScheduler:
    """Repeating timer decoupled from the work it triggers."""

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval_seconds: float,
        shutdown_timeout: float = 10.0,
        name: str = "poll",
    ):
        """
        Initialize the scheduler.

        Args:
            callback: Coroutine function run on every trigger
            interval_seconds: Time between triggers
            shutdown_timeout: How long ``stop`` waits for an in-flight run
            name: Name used in log messages and task names
        """
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.shutdown_timeout = shutdown_timeout
        self.name = name
        self.triggers = 0
        self.skipped_triggers = 0
        self._timer_task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[Any] | None = None

    def is_running(self) -> bool:
        """Check if the timer is active."""
        return self._timer_task is not None and not self._timer_task.done()

    def start(self) -> None:
        """Start the timer; the first run happens immediately."""
        if self.is_running():
            logger.warning("Scheduler already running", scheduler=self.name)
            return

        logger.info(
            "Starting scheduler",
            scheduler=self.name,
            interval_seconds=self.interval_seconds,
        )
        self._timer_task = asyncio.create_task(
            self._timer_loop(), name=f"{self.name}-timer"
        )

    async def stop(self) -> None:
        """Cancel future triggers and give the in-flight run time to finish."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.info("Waiting for in-flight cycle", scheduler=self.name)
            done, _ = await asyncio.wait({inflight}, timeout=self.shutdown_timeout)
            if not done:
                logger.warning(
                    "In-flight cycle still running at shutdown", scheduler=self.name
                )

        logger.info("Scheduler stopped", scheduler=self.name)

    async def _timer_loop(self) -> None:
        while True:
            self.trigger()
            await asyncio.sleep(self.interval_seconds)

    def trigger(self) -> asyncio.Task[Any] | None:
        """
        Start a run unless the previous one is still in flight.

        Returns:
            The task of the started run, or None when the trigger was skipped
        """
        self.triggers += 1
        if self._inflight is not None and not self._inflight.done():
            self.skipped_triggers += 1
            logger.warning(
                "Previous cycle still running, skipping trigger",
                scheduler=self.name,
                skipped_triggers=self.skipped_triggers,
            )
            return None

        self._inflight = asyncio.create_task(
            self._run_callback(), name=f"{self.name}-cycle-{self.triggers}"
        )
        return self._inflight

    async def _run_callback(self) -> None:
        try:
            await self.callback()
        except Exception as e:
            logger.error("Scheduled run failed", scheduler=self.name, error=str(e))
