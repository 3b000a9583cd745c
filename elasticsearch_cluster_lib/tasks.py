"""
Periodic background tasks

Health checks and sniffing run as independent asyncio tasks. Stopping one
is a two-way handshake: the stop signal is set, then the caller waits for
the task to acknowledge by finishing.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callable every ``interval`` seconds until stopped."""

    def __init__(self, name: str, interval: float, func: Callable[[], Awaitable[None]]):
        """
        Initialize periodic task.

        Args:
            name: Name used for the asyncio task and in log messages
            interval: Seconds between two runs
            func: Coroutine function executed on every tick
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.func = func
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the task on the running event loop; no-op if already running."""
        if self.is_running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug(f"{self.name} started (interval={self.interval}s)")

    async def stop(self):
        """Signal the task to stop and wait until it has exited."""
        if self._task is None:
            return
        self._stop.set()
        try:
            await self._task
        finally:
            self._task = None
            logger.debug(f"{self.name} stopped")

    async def _run(self):
        while True:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
                return
            except asyncio.TimeoutError:
                pass

            try:
                await self.func()
            except Exception as e:
                logger.error(f"{self.name} run failed: {e}", exc_info=True)
