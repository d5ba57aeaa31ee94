from __future__ import annotations

import asyncio
from collections.abc import Callable
import contextlib
import logging

from app.services.feed_cache import FeedCache

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Runs the calendar refresh on a fixed interval in a background task.

    The refresh callable is blocking (it performs HTTP calls and file IO), so
    every run happens in a worker thread; the event loop serving feed requests
    is never blocked by it. The feed cache is the only state shared with the
    request handlers.
    """

    def __init__(
        self,
        refresh: Callable[[], object],
        *,
        interval_seconds: float,
        feed_cache: FeedCache,
    ) -> None:
        self.refresh = refresh
        self.interval_seconds = interval_seconds
        self.feed_cache = feed_cache
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def ensure_initial_document(self) -> None:
        if self.feed_cache.exists():
            logger.info("Cached calendar feed found; skipping startup refresh")
            return
        logger.info("No cached calendar feed; running startup refresh")
        await self._run_refresh()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(self._stop_event))
        logger.info("Refresh scheduler started interval_seconds=%s", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._stop_event = None
        logger.info("Refresh scheduler stopped")

    async def _run_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass
            if stop_event.is_set():
                break
            await self._run_refresh()

    async def _run_refresh(self) -> None:
        try:
            await asyncio.to_thread(self.refresh)
        except Exception:
            logger.exception("Scheduled calendar refresh raised unexpectedly")
