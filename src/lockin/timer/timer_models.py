# src/lockin/timer/timer_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Phase(StrEnum):
    """What the timer is doing right now; held by the engine, not derived from storage."""

    IDLE = "idle"
    WORKING = "working"
    ON_BREAK = "on_break"


class TimerState(StrEnum):
    """
    Observable engine state.

    IDLE splits into "nothing selected yet" and "stopped with a preset kept",
    so the presentation layer knows whether to offer Start.
    """

    NO_PRESET = "no_preset"
    PRESET_SELECTED_STOPPED = "preset_selected_stopped"
    WORK_ACTIVE = "work_active"
    BREAK_ACTIVE = "break_active"


@dataclass(slots=True, frozen=True)
class TimerPreset:
    label: str
    work_sec: int
    rest_sec: int

    @classmethod
    def from_minutes(cls, work_min: int, rest_min: int) -> TimerPreset:
        return cls(label=f"{work_min}/{rest_min}", work_sec=work_min * 60, rest_sec=rest_min * 60)


DEFAULT_PRESETS: tuple[TimerPreset, ...] = (
    TimerPreset.from_minutes(25, 5),
    TimerPreset.from_minutes(50, 10),
)


def parse_presets(raw: str) -> list[TimerPreset]:
    """
    Parse "25/5,50/10" (minutes). Malformed or non-positive entries are skipped.
    """
    out: list[TimerPreset] = []
    for part in (raw or "").replace(";", ",").split(","):
        part = part.strip()
        if not part or "/" not in part:
            continue
        work_s, _, rest_s = part.partition("/")
        try:
            work_min, rest_min = int(work_s), int(rest_s)
        except ValueError:
            continue
        if work_min <= 0 or rest_min <= 0:
            continue
        out.append(TimerPreset.from_minutes(work_min, rest_min))
    return out


@dataclass(slots=True, frozen=True)
class EngineSnapshot:
    phase: Phase
    state: TimerState
    preset_index: int | None
    preset: TimerPreset | None
    remaining_sec: int

    @property
    def is_running(self) -> bool:
        return self.phase is not Phase.IDLE

    @property
    def label(self) -> str:
        if self.phase is Phase.WORKING:
            return "Work phase"
        if self.phase is Phase.ON_BREAK:
            return "Break phase"
        if self.preset is not None:
            return "Paused"
        return "Select a preset to start"
