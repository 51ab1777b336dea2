"""Periodic dashboard refresh using pure asyncio.

The refresher only decides *when* to rebuild; the rebuild itself goes
through the shared SummaryCacheStore so on-demand reads and the timer see
the same cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pimem.sessions.cache import SummaryCacheStore

logger = logging.getLogger(__name__)


class DashboardRefresher:
    """Rebuild the dashboard summary every `interval` seconds until shutdown."""

    def __init__(self, cache: SummaryCacheStore, interval: float) -> None:
        self._cache = cache
        self._interval = interval
        self._shutdown_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop once. Further calls are no-ops."""
        if self.running:
            return
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(self._shutdown_event))

    async def stop(self) -> None:
        """Cancel the loop, including any rebuild still in flight."""
        if self._shutdown_event:
            self._shutdown_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._shutdown_event = None

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Run refresh ticks until shutdown_event is set."""
        logger.info("Dashboard refresher started (interval=%ds)", self._interval)
        while not shutdown_event.is_set():
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self._interval)
                break  # shutdown requested
            except asyncio.TimeoutError:
                pass  # interval elapsed, rebuild

            try:
                await self._cache.refresh()
            except Exception as e:
                logger.error("Dashboard refresh failed: %s", e)
        logger.info("Dashboard refresher stopped.")
