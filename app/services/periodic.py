"""Fixed-interval background jobs that never overlap."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicJob:
    """
    Runs an async callable every ``interval`` seconds on the event loop.

    A run that is still in progress when the next tick is due causes that
    tick to be skipped rather than started concurrently.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], Awaitable[Any]]):
        self.name = name
        self.interval = interval
        self.func = func
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run the job now unless a run is already active. Returns False when skipped."""
        if self._lock.locked():
            logger.warning("[%s] Previous run still active, skipping tick", self.name)
            return False

        async with self._lock:
            try:
                await self.func()
            except Exception:
                logger.exception("[%s] Run failed", self.name)
        return True

    async def _loop(self):
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            await self.run_once()
            next_tick += self.interval
            delay = next_tick - loop.time()
            if delay < 0:
                missed = int(-delay // self.interval) + 1
                logger.warning("[%s] Run overran its interval, skipping %d tick(s)", self.name, missed)
                next_tick += missed * self.interval
                delay = next_tick - loop.time()
            await asyncio.sleep(delay)

    def start(self):
        if self.running:
            return
        logger.info("[%s] Starting, every %ss", self.name, self.interval)
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[%s] Stopped", self.name)
