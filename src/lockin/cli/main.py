# src/lockin/cli/main.py

"""
`lockin` console script.

Startup order: settings, logging, timer loop thread, AppState (which
recovers an unfinished session), then the REPL on the main thread.
"""

from __future__ import annotations

import contextlib
import logging
import signal

from ..cli.bootstrap import TimerLoopRunner, create_initial_state, start_timer_loop_in_background
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState, runner: TimerLoopRunner | None) -> None:
    """Never raises. An open work phase is left for recovery on the next start."""
    try:
        with state.lock:
            state.engine.shutdown()
    except Exception:
        logger.exception("Timer shutdown failed.")

    if runner is not None:
        runner.stop()
        runner.join(timeout=5.0)

    with contextlib.suppress(Exception):
        state.store.close()


def _raise_interrupt(signum, _frame) -> None:
    logger.info("Signal %s received, shutting down...", signum)
    raise KeyboardInterrupt


def main() -> None:
    settings = get_settings()
    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s (db=%s, log=%s)...", settings.app_name, settings.db_path, log_file)

    runner = start_timer_loop_in_background()
    if runner is None:
        logger.warning("Timer loop unavailable; the timer will not advance on its own.")
    state = create_initial_state(settings=settings, loop=runner.loop if runner else None)

    # SIGTERM is not available everywhere (e.g. some Windows consoles).
    with contextlib.suppress(ValueError, OSError, AttributeError):
        signal.signal(signal.SIGTERM, _raise_interrupt)

    try:
        run_console_loop(state)
    finally:
        _shutdown(state, runner)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
