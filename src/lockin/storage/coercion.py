# src/lockin/storage/coercion.py

"""
Schema-tolerant document loader.

Every field is coerced on its own: a field that cannot be read is defaulted
and recorded in the report, the rest of the record (and the rest of the
document) is kept. Only text that is not JSON at all, or whose top level is
not an object, resets the whole document.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from .models import (
    EPOCH,
    Document,
    Session,
    StudyData,
    Task,
    UnfinishedSession,
    duration_between,
    new_id,
    parse_timestamp,
)

_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}
_FALSE_STRINGS = {"false", "0", "no", "n", "off", ""}

_KNOWN_TOP_LEVEL = {"tasks", "study"}


class LoadStatus(StrEnum):
    VALID = "valid"
    PARTIAL = "partial"  # some fields defaulted or records dropped
    RESET = "reset"  # missing or unreadable; default document returned


@dataclass(frozen=True, slots=True)
class LoadResult:
    document: Document
    status: LoadStatus
    corrections: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is LoadStatus.VALID


def _reset(reason: str) -> LoadResult:
    return LoadResult(document=Document.default(), status=LoadStatus.RESET, corrections=(reason,))


def parse_document(raw: str | None) -> LoadResult:
    """Parse the persisted text of a document."""
    if raw is None:
        return _reset("document missing")
    try:
        data = json.loads(raw)
    except ValueError:
        return _reset("document is not valid JSON")
    if not isinstance(data, Mapping):
        return _reset(f"document top level is {type(data).__name__}, expected object")
    return coerce_document(data)


class _Fixes:
    """Collects the paths of every field that had to be corrected."""

    def __init__(self) -> None:
        self.items: list[str] = []

    def add(self, path: str, why: str) -> None:
        self.items.append(f"{path}: {why}")


def _coerce_str(value: Any, path: str, fixes: _Fixes) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        fixes.add(path, "converted to text")
        return str(value)
    fixes.add(path, "missing or not text, defaulted to ''")
    return ""


def _coerce_bool(value: Any, path: str, fixes: _Fixes) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        fixes.add(path, "converted to boolean")
        return value != 0
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE_STRINGS:
            fixes.add(path, "converted to boolean")
            return True
        if s in _FALSE_STRINGS:
            fixes.add(path, "converted to boolean")
            return False
    fixes.add(path, "missing or not boolean, defaulted to false")
    return False


def _try_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except (ValueError, OverflowError, TypeError):
        return None


def _coerce_timestamp(value: Any, path: str, fixes: _Fixes, default: datetime) -> datetime:
    ts = _try_timestamp(value)
    if ts is None:
        fixes.add(path, "missing or unparseable timestamp, defaulted")
        return default
    if not isinstance(value, str):
        fixes.add(path, "converted to timestamp")
    return ts


def _coerce_id(value: Any, path: str, fixes: _Fixes, seen: set[str]) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value and value not in seen:
        seen.add(value)
        return value
    fixes.add(path, "missing or duplicate id, re-issued")
    fresh = new_id()
    seen.add(fresh)
    return fresh


def _coerce_task(item: Mapping[str, Any], path: str, fixes: _Fixes, seen: set[str]) -> Task:
    created_at = _coerce_timestamp(item.get("createdAt"), f"{path}.createdAt", fixes, EPOCH)
    return Task(
        id=_coerce_id(item.get("id"), f"{path}.id", fixes, seen),
        text=_coerce_str(item.get("text"), f"{path}.text", fixes),
        done=_coerce_bool(item.get("done"), f"{path}.done", fixes),
        created_at=created_at,
        updated_at=_coerce_timestamp(item.get("updatedAt"), f"{path}.updatedAt", fixes, created_at),
    )


def _coerce_session(item: Mapping[str, Any], path: str, fixes: _Fixes, seen: set[str]) -> Session:
    sid = _coerce_id(item.get("id"), f"{path}.id", fixes, seen)

    start = _try_timestamp(item.get("start"))
    end = _try_timestamp(item.get("end"))
    if start is None:
        fixes.add(f"{path}.start", "missing or unparseable timestamp, defaulted")
    elif not isinstance(item.get("start"), str):
        fixes.add(f"{path}.start", "converted to timestamp")
    if end is None:
        fixes.add(f"{path}.end", "missing or unparseable timestamp, defaulted")
    elif not isinstance(item.get("end"), str):
        fixes.add(f"{path}.end", "converted to timestamp")
    start = start or end or EPOCH
    end = end or start

    raw_dur = item.get("durationSec")
    if (
        isinstance(raw_dur, (int, float))
        and not isinstance(raw_dur, bool)
        and math.isfinite(raw_dur)
        and raw_dur >= 0
    ):
        duration = int(math.floor(raw_dur))
        if duration != raw_dur:
            fixes.add(f"{path}.durationSec", "floored to whole seconds")
    else:
        duration = duration_between(start, end)
        fixes.add(f"{path}.durationSec", "missing or invalid, recomputed from start/end")

    return Session(id=sid, start=start, end=end, duration_sec=duration)


def _coerce_unfinished(value: Any, path: str, fixes: _Fixes) -> UnfinishedSession | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        fixes.add(path, "not an object, dropped")
        return None
    start = _try_timestamp(value.get("start"))
    if start is None:
        fixes.add(f"{path}.start", "missing or unparseable timestamp, slot dropped")
        return None
    last_active = _coerce_timestamp(value.get("lastActive"), f"{path}.lastActive", fixes, start)
    return UnfinishedSession(start=start, last_active=last_active)


def _coerce_records(value: Any, path: str, fixes: _Fixes, coerce_one) -> list:
    if value is None:
        fixes.add(path, "missing, defaulted to []")
        return []
    if not isinstance(value, list):
        fixes.add(path, "not a list, defaulted to []")
        return []
    seen: set[str] = set()
    out = []
    for i, item in enumerate(value):
        item_path = f"{path}[{i}]"
        if not isinstance(item, Mapping):
            fixes.add(item_path, "not an object, dropped")
            continue
        out.append(coerce_one(item, item_path, fixes, seen))
    return out


def coerce_document(data: Mapping[str, Any]) -> LoadResult:
    """Coerce an already-decoded JSON object into a Document."""
    fixes = _Fixes()

    for key in data:
        if key not in _KNOWN_TOP_LEVEL:
            fixes.add(str(key), "unknown top-level key, dropped")

    tasks = _coerce_records(data.get("tasks"), "tasks", fixes, _coerce_task)

    study = StudyData()
    raw_study = data.get("study")
    if raw_study is None:
        fixes.add("study", "missing, defaulted")
    elif not isinstance(raw_study, Mapping):
        fixes.add("study", "not an object, defaulted")
    else:
        study.sessions = _coerce_records(raw_study.get("sessions"), "study.sessions", fixes, _coerce_session)
        study.unfinished = _coerce_unfinished(raw_study.get("unfinished"), "study.unfinished", fixes)

    status = LoadStatus.PARTIAL if fixes.items else LoadStatus.VALID
    return LoadResult(
        document=Document(tasks=tasks, study=study),
        status=status,
        corrections=tuple(fixes.items),
    )
