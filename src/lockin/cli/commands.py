# src/lockin/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..storage.models import Session, Task, utc_now
from ..study.aggregator import format_clock, format_hm, format_hours
from ..timer.timer_models import TimerState

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_SHORT_ID = 8
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, /timer, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValueError as e:
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _local_ts(state: AppState, ts: datetime) -> str:
    tz = state.aggregator.tz
    local = ts.astimezone(tz) if tz is not None else ts.astimezone()
    return local.strftime("%Y-%m-%d %H:%M")


def _parse_user_time(state: AppState, text: str) -> datetime:
    """ISO date-time typed by the user; no offset means local time."""
    if text.lower() == "now":
        return utc_now()
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid time {text!r}. Use YYYY-MM-DDTHH:MM or 'now'.") from None
    if value.tzinfo is None:
        tz = state.aggregator.tz
        value = value.replace(tzinfo=tz) if tz is not None else value.astimezone()
    return value


def _task_line(t: Task) -> str:
    mark = "x" if t.done else " "
    return f"[{mark}] {t.id[:_SHORT_ID]}  {t.text}"


def _session_line(state: AppState, s: Session) -> str:
    return f"{s.id[:_SHORT_ID]}  {_local_ts(state, s.start)} -> {_local_ts(state, s.end)}  {format_hm(s.duration_sec)}"


def _require_task_id(state: AppState, args: list[str], usage: str) -> str:
    if not args:
        raise ValueError(usage)
    task_id = state.tasks.resolve_id(args[0])
    if task_id is None:
        raise ValueError(f"No task matches id {args[0]!r}.")
    return task_id


def _require_session_id(state: AppState, args: list[str], usage: str) -> str:
    if not args:
        raise ValueError(usage)
    session_id = state.sessions.resolve_id(args[0])
    if session_id is None:
        raise ValueError(f"No session matches id {args[0]!r}.")
    return session_id


def _timer_status(state: AppState) -> str:
    snap = state.engine.snapshot()
    preset = f" ({snap.preset.label})" if snap.preset else ""
    if snap.is_running:
        return f"{snap.label}{preset}: {format_clock(snap.remaining_sec)} left"
    return f"{snap.label}{preset}"


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    active = state.tasks.active_tasks()
    sessions = state.sessions.get_sessions()
    return (
        "Status:\n"
        f"  Timer: {_timer_status(state)}\n"
        f"  Open tasks: {len(active)}\n"
        f"  Recorded sessions: {len(sessions)}\n"
        f"  Data: {state.store.db_path}"
    )


# ---- tasks ----


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks      -> open tasks + a preview of completed ones
    /tasks all  -> every completed task too
    """
    show_all = bool(args) and args[0].lower() == "all"
    tasks = state.tasks.get_tasks()
    active = [t for t in tasks if not t.done]
    completed = [t for t in tasks if t.done]

    lines = ["Tasks:"]
    lines.extend(f"  {_task_line(t)}" for t in active)
    if not active:
        lines.append("  (nothing to do)")

    if completed:
        preview = int(getattr(state.settings, "completed_preview", 3))
        shown = completed if show_all else completed[:preview]
        lines.append(f"Completed ({len(completed)}):")
        lines.extend(f"  {_task_line(t)}" for t in shown)
        hidden = len(completed) - len(shown)
        if hidden > 0:
            lines.append(f"  ... {hidden} more (/tasks all)")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    task = state.tasks.add_task(" ".join(args))
    return f"Added: {_task_line(task)}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    task_id = _require_task_id(state, args, "Usage: /edit <id> <new text>")
    task = state.tasks.update_task(task_id, text=" ".join(args[1:]))
    return f"Saved: {_task_line(task)}" if task else "Task not found."


def cmd_done(state: AppState, args: list[str]) -> str:
    task_id = _require_task_id(state, args, "Usage: /done <id>")
    task = state.tasks.update_task(task_id, done=True)
    return f"Done: {_task_line(task)}" if task else "Task not found."


def cmd_undone(state: AppState, args: list[str]) -> str:
    task_id = _require_task_id(state, args, "Usage: /undone <id>")
    task = state.tasks.update_task(task_id, done=False)
    return f"Reopened: {_task_line(task)}" if task else "Task not found."


def cmd_rm(state: AppState, args: list[str]) -> str:
    task_id = _require_task_id(state, args, "Usage: /rm <id>")
    return "Task deleted." if state.tasks.delete_task(task_id) else "Task not found."


def cmd_clear(state: AppState, args: list[str]) -> str:
    """
    /clear      -> ask for confirmation
    /clear yes  -> delete every completed task
    """
    completed = state.tasks.completed_tasks()
    if not completed:
        return "No completed tasks to clear."
    if not args or args[0].lower() not in ("yes", "y"):
        return (
            f"Are you sure you want to delete all {len(completed)} completed task(s)? "
            "This cannot be undone. Confirm with /clear yes."
        )
    removed = state.tasks.clear_completed_tasks()
    return f"Cleared {removed} completed task(s)."


# ---- sessions ----


def cmd_sessions(state: AppState, args: list[str]) -> str:
    limit = 10
    if args:
        try:
            limit = max(1, int(args[0]))
        except ValueError:
            raise ValueError("Usage: /sessions [count]") from None
    sessions = state.sessions.get_sessions()
    if not sessions:
        return "No sessions recorded yet."
    lines = [f"Sessions ({len(sessions)} total, newest first):"]
    lines.extend(f"  {_session_line(state, s)}" for s in sessions[:limit])
    return "\n".join(lines)


def cmd_log(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        raise ValueError("Usage: /log <start> <end>   (YYYY-MM-DDTHH:MM, local time)")
    start = _parse_user_time(state, args[0])
    end = _parse_user_time(state, args[1])
    session = state.sessions.add_session(start, end)
    return f"Logged: {_session_line(state, session)}"


def cmd_sedit(state: AppState, args: list[str]) -> str:
    """
    /sedit <id> start=<time> end=<time>   (either or both)
    """
    usage = "Usage: /sedit <id> [start=<time>] [end=<time>]"
    session_id = _require_session_id(state, args, usage)
    changes: dict[str, datetime] = {}
    for arg in args[1:]:
        key, sep, value = arg.partition("=")
        if not sep or key.lower() not in ("start", "end") or not value:
            raise ValueError(usage)
        changes[key.lower()] = _parse_user_time(state, value)
    if not changes:
        raise ValueError(usage)
    session = state.sessions.update_session(session_id, **changes)
    return f"Saved: {_session_line(state, session)}" if session else "Session not found."


def cmd_srm(state: AppState, args: list[str]) -> str:
    session_id = _require_session_id(state, args, "Usage: /srm <id>")
    return "Session deleted." if state.sessions.delete_session(session_id) else "Session not found."


# ---- timer ----


def cmd_timer(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /timer          -> list presets
    /timer 2        -> select preset #2 and start working
    /timer 50/10    -> select by label
    """
    presets = state.engine.presets
    if not args:
        lines = ["Presets:"]
        for i, p in enumerate(presets, start=1):
            lines.append(f"  {i}. {p.label}  (work {format_clock(p.work_sec)}, break {format_clock(p.rest_sec)})")
        lines.append(f"Timer: {_timer_status(state)}")
        return "\n".join(lines)

    choice = args[0]
    index = next((i for i, p in enumerate(presets) if p.label == choice), None)
    if index is None:
        try:
            index = int(choice) - 1
        except ValueError:
            raise ValueError(f"Unknown preset {choice!r}. Use /timer to list presets.") from None

    if emit is not None and state.engine.state is TimerState.WORK_ACTIVE and 0 <= index < len(presets):
        emit("Recording the running work session before switching presets.")
    state.engine.select_preset(index)
    return _timer_status(state)


def cmd_start(state: AppState, args: list[str]) -> str:
    state.engine.start()
    return _timer_status(state)


def cmd_stop(state: AppState, args: list[str]) -> str:
    state.engine.stop()
    return _timer_status(state)


# ---- analytics ----


def cmd_stats(state: AppState, args: list[str]) -> str:
    """
    /stats            -> current month
    /stats 2024-03    -> a given month
    """
    now = datetime.now(state.aggregator.tz) if state.aggregator.tz else datetime.now().astimezone()
    year, month = now.year, now.month
    if args:
        try:
            y_s, m_s = args[0].split("-", 1)
            year, month = int(y_s), int(m_s)
        except ValueError:
            raise ValueError("Usage: /stats [YYYY-MM]") from None

    agg = state.aggregator
    series = agg.daily_series_for_month(year, month)
    total = sum(sec for _, sec in series)

    lines = [
        f"Study time {year}-{month:02d}:",
        f"  Total this month: {format_hm(total)}",
        f"  Avg daily this month: {format_hours(agg.average_daily_for_month(year, month))} hours",
        f"  Avg daily this year: {format_hours(agg.average_daily_for_year(year))} hours",
    ]
    active_days = [(day, sec) for day, sec in series if sec > 0]
    if active_days:
        lines.append("  Daily hours:")
        lines.extend(f"    {day:2d}: {format_hours(sec)}" for day, sec in active_days)
    return "\n".join(lines)


def cmd_year(state: AppState, args: list[str]) -> str:
    now = datetime.now(state.aggregator.tz) if state.aggregator.tz else datetime.now().astimezone()
    year = now.year
    if args:
        try:
            year = int(args[0])
        except ValueError:
            raise ValueError("Usage: /year [YYYY]") from None

    agg = state.aggregator
    lines = [f"Monthly totals for {year}:"]
    for month, sec in agg.monthly_series_for_year(year):
        lines.append(f"  {_MONTHS[month - 1]}: {format_hours(sec)} h")
    lines.append(f"  Avg daily: {format_hours(agg.average_daily_for_year(year))} hours")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show timer state and counts.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks | /tasks all.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <text>.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <id> <text>.")
registry.register("done", cmd_done, help_text="Mark a task done: /done <id>.")
registry.register("undone", cmd_undone, help_text="Reopen a task: /undone <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("clear", cmd_clear, help_text="Delete all completed tasks: /clear yes.")
registry.register("sessions", cmd_sessions, help_text="List recorded sessions: /sessions [count].")
registry.register("log", cmd_log, help_text="Record a session by hand: /log <start> <end>.")
registry.register("sedit", cmd_sedit, help_text="Edit a session: /sedit <id> start=<t> end=<t>.")
registry.register("srm", cmd_srm, help_text="Delete a session: /srm <id>.")
registry.register("timer", cmd_timer, help_text="List presets or pick one: /timer [n|label].")
registry.register("start", cmd_start, help_text="Resume the timer with the kept preset.")
registry.register("stop", cmd_stop, help_text="Stop the timer (records the work so far).")
registry.register("stats", cmd_stats, help_text="Monthly analytics: /stats [YYYY-MM].")
registry.register("year", cmd_year, help_text="Yearly analytics: /year [YYYY].")
