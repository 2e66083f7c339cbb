# src/lockin/cli/bootstrap.py

"""
Composition root for the console app.

Builds the store, both repositories, the aggregator and the timer engine
around one shared lock, and hosts the asyncio loop that drives the timer
ticker on a daemon thread.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..config import get_settings
from ..core.ports import Ticker
from ..core.state import AppState
from ..storage.document_store import DocumentStore
from ..study.aggregator import Aggregator
from ..study.session_repo import SessionRepository
from ..tasks.task_repo import TaskRepository
from ..timer.phase_engine import PhaseEngine
from ..timer.ticker import AsyncioTicker

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    loop: asyncio.AbstractEventLoop | None = None,
    ticker: Ticker | None = None,
) -> AppState:
    """
    Wire AppState. settings defaults to get_settings().

    With a loop (and no explicit ticker) the engine ticks on that loop under
    the state lock; with neither, it only moves when tick() is called.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    lock = threading.RLock()
    if ticker is None and loop is not None:
        ticker = AsyncioTicker(loop, interval_seconds=settings.heartbeat_seconds, lock=lock)

    store = DocumentStore(settings.db_path, storage_key=settings.storage_key)
    sessions = SessionRepository(store)
    tz = settings.tzinfo() if callable(getattr(settings, "tzinfo", None)) else None

    # Constructing the engine also recovers a session left open by a previous run.
    engine = PhaseEngine(sessions, presets=settings.presets, ticker=ticker)
    if engine.recovered is not None:
        logger.info("Recovered %ss of unfinished work from the last run.", engine.recovered.duration_sec)

    return AppState(
        settings=settings,
        store=store,
        tasks=TaskRepository(store),
        sessions=sessions,
        aggregator=Aggregator(sessions, tz=tz),
        engine=engine,
        lock=lock,
    )


@dataclass
class TimerLoopRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.loop.stop)
        except Exception:
            logger.debug("Failed to signal timer loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_timer_loop_in_background() -> TimerLoopRunner | None:
    """
    Run a fresh event loop on a daemon thread; the REPL keeps the main thread.

    Returns None if the loop did not come up within five seconds.
    """
    loop = asyncio.new_event_loop()
    started = threading.Event()

    def serve() -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(started.set)
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            with contextlib.suppress(Exception):
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
            logger.debug("Timer loop closed (%d pending task(s) cancelled).", len(pending))

    thread = threading.Thread(target=serve, name="lockin-timer", daemon=True)
    thread.start()

    if not started.wait(timeout=5.0):
        logger.error("Timer loop thread did not start.")
        return None

    logger.info("Timer loop thread started.")
    return TimerLoopRunner(thread=thread, loop=loop)
