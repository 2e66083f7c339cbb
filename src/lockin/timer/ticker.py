# src/lockin/timer/ticker.py

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class AsyncioTicker:
    """
    Repeating asyncio task that calls a callback every interval_seconds.

    start() may be called from inside the loop or from another thread (the
    console REPL runs outside the loop thread). Each start() bumps a
    generation counter, so a run that was replaced stops at its next wake-up
    even if its cancellation has not been delivered yet.

    To stop ticking, call cancel().

    With a lock, each tick waits for it on the loop thread, blocking the whole
    loop while the REPL holds it. Keep this loop for the ticker only; run
    other coroutines on a loop of their own.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        *,
        interval_seconds: float = 1.0,
        lock: threading.RLock | None = None,
    ) -> None:
        self._loop = loop
        self._interval = max(0.05, float(interval_seconds))
        self._lock = lock
        self._generation = 0
        self._handle: asyncio.Task | concurrent.futures.Future | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.done()

    def start(self, callback: Callable[[], None]) -> None:
        self.cancel()
        self._generation += 1
        coro = self._run(callback, self._generation)

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is not None and (self._loop is None or self._loop is running_loop):
            self._handle = running_loop.create_task(coro)
        elif self._loop is not None:
            self._handle = asyncio.run_coroutine_threadsafe(coro, self._loop)
        else:
            coro.close()
            raise RuntimeError("AsyncioTicker needs a running event loop or an explicit loop.")
        logger.debug("Ticker armed (interval=%ss).", self._interval)

    def cancel(self) -> None:
        self._generation += 1
        handle, self._handle = self._handle, None
        if handle is not None and not handle.done():
            handle.cancel()
            logger.debug("Ticker cancelled.")

    async def _run(self, callback: Callable[[], None], generation: int) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if generation != self._generation:
                return
            try:
                if self._lock is not None:
                    with self._lock:
                        if generation != self._generation:
                            return
                        callback()
                else:
                    callback()
            except Exception:
                logger.exception("Timer tick failed.")
