"""Fixed-interval background refresh on a dedicated event loop thread."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable, Coroutine
from concurrent.futures import Future
from typing import Any, TypeVar

from usage_dashboard.config import REFRESH_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshScheduler:
    """Run ``refresh`` now and then every ``interval_seconds``.

    Failures of a run are logged and the timer re-arms regardless. On-demand
    work goes through ``submit`` so it shares the timer's event loop, which
    lets the aggregator's lock order manual and scheduled refreshes.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        *,
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
        name: str = "usage-refresh",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.refresh = refresh
        self.interval_seconds = interval_seconds
        self.name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ticker: Future[None] | None = None
        self._started = threading.Event()
        self._guard = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._guard:
            if self.running:
                return
            self._started.clear()
            self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
            self._thread.start()
            self._started.wait()
            assert self._loop is not None
            self._ticker = asyncio.run_coroutine_threadsafe(self._tick_forever(), self._loop)
            logger.info("Refresh scheduler started (every %gs).", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._guard:
            if not self.running or self._loop is None:
                return
            if self._ticker is not None:
                self._ticker.cancel()
            self._loop.call_soon_threadsafe(self._loop.stop)
            assert self._thread is not None
            self._thread.join(timeout)
            self._thread = None
            self._ticker = None
            logger.info("Refresh scheduler stopped.")

    def submit(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run ``coro`` on the scheduler loop and block until it finishes."""
        if not self.running or self._loop is None:
            coro.close()
            raise RuntimeError("Scheduler is not running.")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout)

    async def run_once(self) -> bool:
        """Run a single refresh, returning False instead of raising on failure."""
        try:
            await self.refresh()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled usage refresh failed.")
            return False
        return True

    async def _tick_forever(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._started.set()
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
