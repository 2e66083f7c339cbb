# src/lockin/timer/phase_engine.py

from __future__ import annotations

"""
Timer phase engine.

A work/break state machine that records study sessions:
- entering work writes the unfinished-session slot,
- every work tick refreshes its last_active (heartbeat),
- leaving work (expiry, stop, preset switch) folds the slot into a Session.

Breaks are never recorded. Transitions are plain method calls; the one-second
cadence comes from an injected Ticker, so tests drive tick() directly.

Persistence is best-effort: a failing repository call is logged and the
in-memory transition still happens. Whatever a crash loses is picked up by
recover() on the next start, up to one heartbeat interval.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from ..core.ports import Clock, SessionRepo, Ticker
from ..storage.models import Session, utc_now
from .timer_models import DEFAULT_PRESETS, EngineSnapshot, Phase, TimerPreset, TimerState

logger = logging.getLogger(__name__)

SignalHandler = Callable[[], None]
SnapshotHandler = Callable[[EngineSnapshot], None]


class PhaseEngine:
    def __init__(
        self,
        sessions: SessionRepo,
        *,
        presets: Sequence[TimerPreset] = DEFAULT_PRESETS,
        ticker: Ticker | None = None,
        clock: Clock = utc_now,
        recover: bool = True,
    ) -> None:
        if not presets:
            raise ValueError("At least one timer preset is required.")

        self._sessions = sessions
        self._presets: tuple[TimerPreset, ...] = tuple(presets)
        self._ticker = ticker
        self._clock = clock

        self.phase = Phase.IDLE
        self.preset_index: int | None = None
        self.remaining_sec = 0
        self._work_started_at: datetime | None = None

        self._on_work_complete: SignalHandler | None = None
        self._on_break_complete: SignalHandler | None = None
        self._on_change: SnapshotHandler | None = None

        self.recovered: Session | None = self.recover() if recover else None

    # ----- Callbacks -----

    def set_on_work_complete(self, fn: SignalHandler | None) -> None:
        self._on_work_complete = fn

    def set_on_break_complete(self, fn: SignalHandler | None) -> None:
        self._on_break_complete = fn

    def set_on_change(self, fn: SnapshotHandler | None) -> None:
        self._on_change = fn

    def _emit(self, fn: Callable[..., None] | None, *args) -> None:
        if fn is None:
            return
        try:
            fn(*args)
        except Exception:
            logger.debug("Timer listener failed.", exc_info=True)

    def _emit_change(self) -> None:
        self._emit(self._on_change, self.snapshot())

    # ----- Queries -----

    @property
    def presets(self) -> tuple[TimerPreset, ...]:
        return self._presets

    @property
    def preset(self) -> TimerPreset | None:
        return self._presets[self.preset_index] if self.preset_index is not None else None

    @property
    def state(self) -> TimerState:
        if self.phase is Phase.WORKING:
            return TimerState.WORK_ACTIVE
        if self.phase is Phase.ON_BREAK:
            return TimerState.BREAK_ACTIVE
        if self.preset_index is None:
            return TimerState.NO_PRESET
        return TimerState.PRESET_SELECTED_STOPPED

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            phase=self.phase,
            state=self.state,
            preset_index=self.preset_index,
            preset=self.preset,
            remaining_sec=self.remaining_sec,
        )

    # ----- Commands -----

    def select_preset(self, index: int) -> None:
        """Switch to a preset and start working right away."""
        if not 0 <= index < len(self._presets):
            raise ValueError(f"Unknown preset #{index + 1}; choose 1..{len(self._presets)}.")

        if self.phase is Phase.WORKING:
            # Close the running session first so the switch never double counts.
            self._finalize_work(end=self._clock())

        self.preset_index = index
        logger.info("Preset selected: %s", self._presets[index].label)
        self._enter_work()
        self._arm_ticker()
        self._emit_change()

    def start(self) -> None:
        """Resume work with the kept preset."""
        if self.preset_index is None:
            raise ValueError("Select a preset before starting the timer.")
        if self.phase is not Phase.IDLE:
            return
        self._enter_work()
        self._arm_ticker()
        self._emit_change()

    def stop(self) -> None:
        if self.phase is Phase.IDLE:
            return
        if self.phase is Phase.WORKING:
            self._finalize_work(end=self._clock())
        self.phase = Phase.IDLE
        self.remaining_sec = 0
        self._disarm_ticker()
        logger.info("Timer stopped (preset kept: %s).", self.preset.label if self.preset else None)
        self._emit_change()

    def tick(self) -> None:
        """
        Advance one second. Called by the ticker while a phase is active.
        """
        if self.phase is Phase.IDLE:
            return

        self.remaining_sec -= 1
        if self.phase is Phase.WORKING:
            self._heartbeat()

        if self.remaining_sec <= 0:
            if self.phase is Phase.WORKING:
                self._expire_work()
            else:
                self._expire_break()

        self._emit_change()

    def recover(self) -> Session | None:
        """
        Fold an unfinished session left by a previous run into a Session.

        The session ends at its last heartbeat, not now: time after the last
        heartbeat is unknown.
        """
        try:
            unfinished = self._sessions.get_unfinished_session()
        except Exception:
            logger.exception("Reading unfinished session failed during recovery.")
            return None
        if unfinished is None:
            return None

        session: Session | None = None
        try:
            session = self._sessions.add_session(unfinished.start, unfinished.last_active)
            logger.info("Recovered unfinished session: %ss", session.duration_sec)
        except Exception:
            logger.exception("Recording recovered session failed.")
        self._clear_slot()
        return session

    def shutdown(self) -> None:
        """
        Teardown hook. Best-effort: one last heartbeat so recovery loses as
        little as possible, then stop ticking. Nothing is finalized here.
        """
        if self.phase is Phase.WORKING:
            self._heartbeat()
        self._disarm_ticker()

    # ----- Transitions -----

    def _enter_work(self) -> None:
        preset = self.preset
        assert preset is not None
        now = self._clock()
        self._work_started_at = now
        try:
            self._sessions.set_unfinished_session(now)
        except Exception:
            logger.exception("Writing unfinished session failed.")
        self.phase = Phase.WORKING
        self.remaining_sec = preset.work_sec

    def _enter_break(self) -> None:
        preset = self.preset
        assert preset is not None
        self.phase = Phase.ON_BREAK
        self.remaining_sec = preset.rest_sec

    def _expire_work(self) -> None:
        self._finalize_work(end=self._clock())
        logger.info("Work phase complete.")
        self._emit(self._on_work_complete)
        self._enter_break()

    def _expire_break(self) -> None:
        logger.info("Break complete.")
        self._emit(self._on_break_complete)
        self._enter_work()

    def _finalize_work(self, *, end: datetime) -> Session | None:
        """Turn the running work phase into a Session and clear the slot."""
        start = self._work_started_at
        try:
            unfinished = self._sessions.get_unfinished_session()
        except Exception:
            logger.exception("Reading unfinished session failed.")
            unfinished = None
        if unfinished is not None:
            start = unfinished.start
        self._work_started_at = None

        if start is None:
            return None

        session: Session | None = None
        try:
            session = self._sessions.add_session(start, end)
        except Exception:
            logger.exception("Recording session failed.")
        self._clear_slot()
        return session

    def _heartbeat(self) -> None:
        try:
            self._sessions.update_last_active()
        except Exception:
            logger.exception("Heartbeat failed.")

    def _clear_slot(self) -> None:
        try:
            self._sessions.clear_unfinished_session()
        except Exception:
            logger.exception("Clearing unfinished session failed.")

    # ----- Ticker -----

    def _arm_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.start(self.tick)

    def _disarm_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
