"""Time-boxed dashboard summary cache, mirrored to <daily dir>/cache.json.

Several host processes may share one memory root. Each keeps its own
in-memory copy and reuses the on-disk copy when it is younger than the
rebuild interval. Concurrent rebuilds race; the last whole-file write wins.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

REBUILD_INTERVAL_MS = 15 * 60 * 1000

Rebuild = Callable[[], Awaitable[str]]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SummaryCache:
    """A built summary and its build time in epoch milliseconds."""

    summary: str = ""
    timestamp: int = 0

    def is_fresh(self, now: int, interval_ms: int = REBUILD_INTERVAL_MS) -> bool:
        return bool(self.summary) and now - self.timestamp < interval_ms


def load_cache_file(path: Path) -> SummaryCache | None:
    """Read cache.json. Missing or malformed files read as None."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    summary = data.get("summary")
    timestamp = data.get("timestamp")
    if not isinstance(summary, str) or isinstance(timestamp, bool):
        return None
    if not isinstance(timestamp, (int, float)):
        return None
    return SummaryCache(summary=summary, timestamp=int(timestamp))


def save_cache_file(path: Path, cache: SummaryCache) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({"summary": cache.summary, "timestamp": cache.timestamp}), encoding="utf-8"
    )


async def get_or_rebuild(
    cached: SummaryCache,
    now: int,
    rebuild: Rebuild,
    load_disk: Callable[[], SummaryCache | None] = lambda: None,
    interval_ms: int = REBUILD_INTERVAL_MS,
) -> tuple[SummaryCache, bool]:
    """Return (cache, rebuilt).

    Fresh in-memory cache wins; an empty in-memory cache falls back to a
    fresh disk cache; anything else is rebuilt at `now`.
    """
    if cached.is_fresh(now, interval_ms):
        return cached, False
    if not cached.summary:
        on_disk = load_disk()
        if on_disk is not None and on_disk.is_fresh(now, interval_ms):
            return on_disk, False
    return SummaryCache(summary=await rebuild(), timestamp=now), True


class SummaryCacheStore:
    """In-memory summary cache backed by a JSON file."""

    def __init__(
        self,
        path: Path,
        rebuild: Rebuild,
        interval_ms: int = REBUILD_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.path = path
        self.interval_ms = interval_ms
        self.current = SummaryCache()
        self._rebuild = rebuild
        self._clock = clock

    async def get(self) -> str:
        """Cached summary, rebuilding (and persisting) it when stale."""
        cache, rebuilt = await get_or_rebuild(
            self.current,
            self._clock(),
            self._rebuild,
            load_disk=lambda: load_cache_file(self.path),
            interval_ms=self.interval_ms,
        )
        self.current = cache
        if rebuilt:
            self._persist()
        return cache.summary

    async def refresh(self) -> str:
        """Rebuild unconditionally. Used by the periodic refresher."""
        self.current = SummaryCache(summary=await self._rebuild(), timestamp=self._clock())
        self._persist()
        return self.current.summary

    def _persist(self) -> None:
        try:
            save_cache_file(self.path, self.current)
            logger.info("Dashboard summary rebuilt (%d chars)", len(self.current.summary))
        except OSError as e:
            logger.warning("Failed to persist summary cache %s: %s", self.path, e)
