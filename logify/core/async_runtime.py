"""Fire-and-forget execution of coroutines from sync or async callers."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Coroutine
from concurrent.futures import Future
from typing import Any

from logify.core.logging import get_logger


logger = get_logger(__name__)


class _BackgroundLoop:
    """Daemon thread running an event loop for callers without one."""

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None or self._thread is None or not self._thread.is_alive():
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="logify-dispatch", daemon=True
                )
                thread.start()
                self._loop, self._thread = loop, thread
                logger.debug("background_loop_started")
            return self._loop

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future[Any]:
        return asyncio.run_coroutine_threadsafe(coro, self._ensure_started())


class BackgroundDispatcher:
    """Schedules coroutines without making the caller wait for them.

    Inside a running event loop the coroutine becomes a task on that loop.
    Plain synchronous callers hand it to a shared background loop thread.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._background = _BackgroundLoop()

    def submit(
        self, coro: Coroutine[Any, Any, Any], *, name: str | None = None
    ) -> asyncio.Task[Any] | Future[Any]:
        """Schedule ``coro`` and return its task or future handle."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._background.submit(coro)

        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return sum(not task.done() for task in self._tasks)

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for tasks scheduled on the current loop to finish."""
        loop = asyncio.get_running_loop()
        tasks = [t for t in self._tasks if not t.done() and t.get_loop() is loop]
        if not tasks:
            return

        # asyncio.wait leaves unfinished pushes running instead of cancelling them
        _, still_pending = await asyncio.wait(tasks, timeout=timeout)
        if still_pending:
            logger.warning(
                "dispatch_drain_timeout",
                timeout=timeout,
                remaining_tasks=len(still_pending),
            )
