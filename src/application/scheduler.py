import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SUNDAY = 6


class TaskState(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    CANCELLED = "cancelled"


def delay_until_next(weekday: int, now: Optional[datetime] = None) -> timedelta:
    """
    Whole days from `now` until the next `weekday` (Monday=0 ... Sunday=6).
    Returns zero when `now` already falls on that weekday.
    """
    now = now or datetime.now(timezone.utc)
    return timedelta(days=(weekday - now.weekday()) % 7)


class RecurringTask:
    """
    Runs a coroutine function after an initial delay, then every `interval`
    seconds, on the running event loop.

    Usage::

        task = RecurringTask("GitHub sync", 0, 14 * 86400, sync_service.sync_stats)
        task.start()
        ...
        await task.stop()

    `stop()` lets an in-flight invocation finish and prevents any further one.
    An exception raised by the task is logged and the schedule carries on.
    """

    def __init__(
        self,
        name: str,
        initial_delay: float,
        interval: float,
        task: Callable[[], Awaitable[Any]],
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.initial_delay = max(float(initial_delay), 0.0)
        self.interval = float(interval)
        self.task = task
        self.state = TaskState.WAITING
        self.runs = 0
        self._stopped: Optional[asyncio.Event] = None
        self._runner: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._runner is not None:
            raise RuntimeError(f"[{self.name}] already started")
        self._stopped = asyncio.Event()
        self._runner = asyncio.create_task(self._run(), name=self.name)
        logger.info(f"[{self.name}] scheduled: first run in {self.initial_delay:.0f}s, then every {self.interval:.0f}s.")

    async def stop(self) -> None:
        """Cancels the timer and waits for an in-flight run to finish."""
        if self._runner is None:
            self.state = TaskState.CANCELLED
            return
        self._stopped.set()
        await self._runner
        logger.info(f"[{self.name}] stopped after {self.runs} run(s).")

    async def _run(self) -> None:
        delay = self.initial_delay
        while True:
            self.state = TaskState.WAITING
            if await self._wait(delay):
                break
            self.state = TaskState.RUNNING
            await self._fire()
            if self._stopped.is_set():
                break
            delay = self.interval
        self.state = TaskState.CANCELLED

    async def _wait(self, delay: float) -> bool:
        """Sleeps for `delay` seconds; returns True if stopped meanwhile."""
        if self._stopped.is_set():
            return True
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _fire(self) -> None:
        logger.info(f"[{self.name}]: Starting...")
        started_at = time.perf_counter()
        try:
            await self.task()
        except Exception as e:
            logger.exception(f"[{self.name}] failed: {e}")
        elapsed_ms = (time.perf_counter() - started_at) * 1000.0
        self.runs += 1
        logger.info(f"[{self.name}] completed in {elapsed_ms:.0f}ms.")
