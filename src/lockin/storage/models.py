# src/lockin/storage/models.py

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

STORAGE_KEY = "LockInData"

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    return normalize_timestamp(datetime.now(UTC))


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_timestamp(value: datetime) -> datetime:
    """
    Bring a datetime into the persisted form: aware, UTC, millisecond precision.

    Naive values are read as UTC. Raises ValueError when the instant has no
    UTC representation (offsets pushing it past year 1 or 9999).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    try:
        value = value.astimezone(UTC)
    except OverflowError as e:
        raise ValueError(f"timestamp out of range: {value.isoformat()}") from e
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_iso(value: datetime) -> str:
    """2024-03-01T10:00:00.000Z"""
    ts = normalize_timestamp(value)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a persisted or user-supplied timestamp.

    Accepts datetimes, ISO-8601 text (with "Z" or an offset) and epoch
    milliseconds. Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return normalize_timestamp(value)
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"not a timestamp: {value!r}")
        try:
            return normalize_timestamp(datetime.fromtimestamp(value / 1000.0, UTC))
        except (OverflowError, OSError) as e:
            raise ValueError(f"timestamp out of range: {value!r}") from e
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return normalize_timestamp(datetime.fromisoformat(text))
    raise ValueError(f"not a timestamp: {value!r}")


def duration_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, clamped at zero."""
    seconds = math.floor((end - start).total_seconds())
    return max(0, int(seconds))


@dataclass(slots=True)
class Task:
    id: str
    text: str
    done: bool
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "done": self.done,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass(slots=True)
class Session:
    id: str
    start: datetime
    end: datetime
    duration_sec: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "durationSec": self.duration_sec,
        }


@dataclass(slots=True)
class UnfinishedSession:
    start: datetime
    last_active: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": to_iso(self.start),
            "lastActive": to_iso(self.last_active),
        }


@dataclass(slots=True)
class StudyData:
    sessions: list[Session] = field(default_factory=list)
    unfinished: UnfinishedSession | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions": [s.to_dict() for s in self.sessions],
            "unfinished": self.unfinished.to_dict() if self.unfinished else None,
        }


@dataclass(slots=True)
class Document:
    tasks: list[Task] = field(default_factory=list)
    study: StudyData = field(default_factory=StudyData)

    @classmethod
    def default(cls) -> Document:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "study": self.study.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))
