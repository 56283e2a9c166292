"""
Periodic connection pool diagnostics.
Logs pool usage, warns when it reaches a threshold and evicts idle connections between ticks.
"""

import asyncio
import logging
from typing import Optional

from rental_catalog.pool import ConnectionPool

logger = logging.getLogger(__name__)


class PoolMonitor:
    """Background task sampling a pool every ``interval`` seconds until stopped."""

    def __init__(self, pool: ConnectionPool, interval: float = 30.0, warn_threshold: Optional[int] = None):
        self.pool = pool
        self.interval = interval
        self.warn_threshold = warn_threshold if warn_threshold is not None else pool.max_size
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Pool monitor started (every {self.interval:.0f}s)")

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Pool monitor stopped")

    async def sample(self) -> int:
        """
        Take one sample.

        Returns:
            Number of active connections observed
        """
        active = self.pool.active_connections
        if active >= self.warn_threshold:
            logger.warning(
                f"High connection usage: {active}/{self.pool.max_size} active, "
                f"{self.pool.waiting} waiting"
            )
        else:
            logger.info(f"Active connections: {active}/{self.pool.max_size}")

        if not self.pool.closed:
            await self.pool.evict_idle()
        return active

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sample()
            except Exception as e:
                logger.error(f"Pool monitor sample failed: {e}")
