"""Coalescing and periodic execution of async jobs."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Collapse bursts of calls into a single invocation of ``func``.

    A call made while an invocation is in flight, or less than ``wait``
    seconds after it started, awaits that invocation instead of starting
    a new one.
    """

    def __init__(self, func: Callable[[], Awaitable[Any]], wait: float):
        self.func = func
        self.wait = wait
        self._task: Optional[asyncio.Task] = None
        self._started = 0.0

    async def __call__(self) -> Any:
        loop = asyncio.get_running_loop()
        task = self._task
        if task is None or (task.done() and loop.time() - self._started >= self.wait):
            self._started = loop.time()
            task = self._task = loop.create_task(self.func())
        # one caller being cancelled must not cancel the shared run
        return await asyncio.shield(task)

    async def cancel(self) -> None:
        """Stop any in-flight invocation and forget the last result."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Discarded result of a cancelled run", exc_info=True)


class PeriodicTask:
    def __init__(self, func: Callable[[], Awaitable[Any]], interval: float):
        self.func = func
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            try:
                await self.func()
            except Exception:
                logger.exception("Periodic task failed")
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
