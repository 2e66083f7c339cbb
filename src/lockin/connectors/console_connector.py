# src/lockin/connectors/console_connector.py

"""
Interactive console front end.

Slash commands go to the command registry; any other line is taken as a new
task. Phase-change cues from the timer are printed from the loop thread, so
they can appear while the prompt is waiting for input.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..study.aggregator import format_clock
from ..timer.timer_models import Phase

logger = logging.getLogger(__name__)

WORK_COMPLETE_TEXT = "Work session is complete. Time for a break."
BREAK_COMPLETE_TEXT = "Break is over. Time to work."

EXIT_COMMANDS = ("/exit", "/quit")


def _clock_now() -> str:
    return datetime.now().astimezone().strftime("%H:%M:%S")


def _say(text: str) -> None:
    print(f"[{_clock_now()}] {text}", flush=True)


def _cue(text: str) -> None:
    # "\a" rings the terminal bell in place of the spoken cue.
    _say(f"\a{text}")


def _prompt(state: AppState) -> str:
    snap = state.engine.snapshot()
    if snap.phase is Phase.WORKING:
        return f"(work {format_clock(snap.remaining_sec)}) > "
    if snap.phase is Phase.ON_BREAK:
        return f"(break {format_clock(snap.remaining_sec)}) > "
    return "> "


def attach_timer_notices(state: AppState) -> None:
    """Announce phase changes on the console."""
    state.engine.set_on_work_complete(lambda: _cue(WORK_COMPLETE_TEXT))
    state.engine.set_on_break_complete(lambda: _cue(BREAK_COMPLETE_TEXT))


def _read_line(state: AppState) -> str | None:
    with state.lock:
        prompt = _prompt(state)
    try:
        return input(prompt).strip()
    except EOFError:
        logger.info("Console input closed.")
    except KeyboardInterrupt:
        print()
        logger.info("Console interrupted.")
    return None


def _dispatch(state: AppState, line: str) -> str | None:
    if not line.startswith("/"):
        line = f"/add {line}"
    try:
        with state.lock:
            return command_registry.handle(state, line, emit=_say)
    except Exception:
        logger.exception("Command failed: %s", line.split(maxsplit=1)[0])
        return "Something went wrong; details are in the log file."


def run_console_loop(state: AppState) -> None:
    attach_timer_notices(state)
    _say("Type /help for commands, /exit to quit. Plain text adds a task.")
    logger.info("Console loop started.")

    while True:
        line = _read_line(state)
        if line is None:
            break
        if not line:
            continue
        if line.lower() in EXIT_COMMANDS:
            break

        reply = _dispatch(state, line)
        if reply is not None:
            print(reply, flush=True)

    logger.info("Console loop finished.")
