"""Bounded worker pool for image analysis.

Flow:
    request handler -> wait for a slot (asyncio.Semaphore) -> worker thread
    -> decode + classify -> slot returned when the worker thread is done

A request that cannot get a slot within ``ACQUIRE_TIMEOUT_SECONDS`` fails
with ``TimeoutError``; the HTTP layer turns that into a 503.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable
    from concurrent.futures import Future

    from hydrocolor.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACQUIRE_TIMEOUT_SECONDS: float = 5.0


class AnalysisPool:
    """Bounds how many images are decoded and classified at once."""

    def __init__(self, settings: Settings, timeout: float = ACQUIRE_TIMEOUT_SECONDS) -> None:
        self._slots = asyncio.Semaphore(settings.max_concurrent)
        self._workers = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="color-analysis",
        )
        self._timeout = timeout
        self._running = 0
        self._waiting = 0
        self._lock = threading.Lock()

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Call ``func(*args)`` on a worker thread once a slot is free.

        Cancelling the awaiting task discards the result but does not free
        the slot early; the slot returns when the worker is done.

        Raises:
            TimeoutError: If no slot frees up within the timeout.
        """
        self._adjust(waiting=1)
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self._timeout)
        finally:
            self._adjust(waiting=-1)

        self._adjust(running=1)
        loop = asyncio.get_running_loop()
        try:
            future = self._workers.submit(func, *args)
        except BaseException:
            self._release_slot()
            raise

        def _on_done(_: Future[T]) -> None:
            loop.call_soon_threadsafe(self._release_slot)

        # Registered before wrap_future so the slot is back before the caller resumes.
        future.add_done_callback(_on_done)
        return await asyncio.wrap_future(future)

    def _adjust(self, *, running: int = 0, waiting: int = 0) -> None:
        with self._lock:
            self._running += running
            self._waiting += waiting

    def _release_slot(self) -> None:
        self._slots.release()
        self._adjust(running=-1)

    @property
    def active_count(self) -> int:
        """Analyses holding a slot right now."""
        with self._lock:
            return self._running

    @property
    def queue_depth(self) -> int:
        """Requests still waiting for a slot."""
        with self._lock:
            return self._waiting

    def shutdown(self) -> None:
        """Wait for in-flight work and stop the worker threads."""
        logger.debug("Stopping analysis workers")
        self._workers.shutdown(wait=True)
