# tests/test_document_store.py

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from lockin.storage.coercion import LoadStatus, parse_document
from lockin.storage.document_store import DocumentStore
from lockin.storage.models import Document, Session, Task, UnfinishedSession, to_iso
from lockin.tasks.task_repo import TaskRepository

from .fakes import FailingSaveStore, FlakyReadStore


def _ts(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


def test_missing_document_is_created_and_persisted(store: DocumentStore) -> None:
    assert store.read_raw() is None

    result = store.load_with_report()

    assert result.status is LoadStatus.RESET
    assert result.document == Document.default()
    assert json.loads(store.read_raw() or "") == {
        "tasks": [],
        "study": {"sessions": [], "unfinished": None},
    }


def test_corrupt_document_is_reset_not_raised(store: DocumentStore) -> None:
    store.write_raw("{not json")

    doc = store.load()

    assert doc == Document.default()
    assert store.read_raw() == Document.default().to_json()


def test_non_object_top_level_is_reset(store: DocumentStore) -> None:
    store.write_raw("[1, 2, 3]")
    assert store.load_with_report().status is LoadStatus.RESET
    assert store.read_raw() == Document.default().to_json()


def test_save_then_load_is_valid_and_lossless(store: DocumentStore) -> None:
    doc = Document.default()
    doc.tasks.append(Task(id="t1", text="read", done=True, created_at=_ts(2024, 1, 1), updated_at=_ts(2024, 1, 2)))
    doc.study.sessions.append(Session(id="s1", start=_ts(2024, 1, 1, 9), end=_ts(2024, 1, 1, 10), duration_sec=3600))
    doc.study.unfinished = UnfinishedSession(start=_ts(2024, 1, 3, 8), last_active=_ts(2024, 1, 3, 8, 5))

    assert store.save(doc) is True
    result = store.load_with_report()

    assert result.status is LoadStatus.VALID
    assert result.corrections == ()
    assert result.document == doc


def test_timestamps_are_persisted_as_utc_iso_with_millis(store: DocumentStore) -> None:
    doc = Document.default()
    doc.study.unfinished = UnfinishedSession(
        start=datetime(2024, 3, 1, 10, 0, 0, 123456, tzinfo=UTC),
        last_active=_ts(2024, 3, 1, 10, 1),
    )
    store.save(doc)

    raw = json.loads(store.read_raw() or "")
    assert raw["study"]["unfinished"] == {
        "start": "2024-03-01T10:00:00.123Z",
        "lastActive": "2024-03-01T10:01:00.000Z",
    }


def test_fields_are_coerced_independently() -> None:
    raw = {
        "tasks": [
            {"id": "a", "text": "ok", "done": "yes", "createdAt": "2024-01-01T00:00:00.000Z"},
            {"id": "a", "text": 42, "done": False, "createdAt": "garbage", "updatedAt": "2024-01-02T00:00:00Z"},
            "not a record",
        ],
        "study": {
            "sessions": [
                {
                    "id": "s1",
                    "start": "2024-03-01T10:00:00.000Z",
                    "end": "2024-03-01T10:30:00.000Z",
                    "durationSec": "abc",
                },
                {"start": "2024-03-02T10:00:00.000Z", "end": "2024-03-02T10:00:10.000Z", "durationSec": 10},
            ],
            "unfinished": {"start": "2024-03-03T08:00:00.000Z", "lastActive": None},
        },
        "extra": True,
    }

    result = parse_document(json.dumps(raw))
    doc = result.document

    assert result.status is LoadStatus.PARTIAL
    assert len(doc.tasks) == 2

    first, second = doc.tasks
    assert first.id == "a"
    assert first.done is True
    assert first.updated_at == first.created_at  # missing updatedAt falls back to createdAt

    assert second.id != "a"  # duplicate id re-issued
    assert second.text == "42"
    assert to_iso(second.updated_at) == "2024-01-02T00:00:00.000Z"

    s1, s2 = doc.study.sessions
    assert s1.duration_sec == 1800  # recomputed from start/end
    assert s2.id  # missing id issued
    assert s2.duration_sec == 10

    assert doc.study.unfinished is not None
    assert doc.study.unfinished.last_active == doc.study.unfinished.start

    joined = "\n".join(result.corrections)
    for path in ("tasks[0].done", "tasks[1].id", "tasks[2]", "study.sessions[0].durationSec", "extra"):
        assert path in joined


def test_unfinished_without_start_is_dropped() -> None:
    raw = {"tasks": [], "study": {"sessions": [], "unfinished": {"lastActive": "2024-03-03T08:00:00Z"}}}
    result = parse_document(json.dumps(raw))

    assert result.document.study.unfinished is None
    assert result.status is LoadStatus.PARTIAL


def test_negative_duration_is_recomputed_and_clamped() -> None:
    raw = {
        "tasks": [],
        "study": {
            "sessions": [
                {"id": "x", "start": "2024-03-01T10:00:00Z", "end": "2024-03-01T09:00:00Z", "durationSec": -5}
            ],
            "unfinished": None,
        },
    }
    session = parse_document(json.dumps(raw)).document.study.sessions[0]
    assert session.duration_sec == 0


def test_wrong_container_types_default_to_empty() -> None:
    result = parse_document(json.dumps({"tasks": {"a": 1}, "study": "nope"}))

    assert result.document == Document.default()
    assert result.status is LoadStatus.PARTIAL


def test_partial_document_is_not_rewritten_on_load(store: DocumentStore) -> None:
    raw = json.dumps({"tasks": [{"id": "t", "text": "x", "done": 1}], "study": {"sessions": []}})
    store.write_raw(raw)

    doc = store.load()

    assert doc.tasks[0].done is True
    assert store.read_raw() == raw


def test_write_failure_is_reported_not_raised(tmp_path: Path) -> None:
    store = FailingSaveStore(tmp_path / "db.sqlite3")

    assert store.save(Document.default()) is False
    # load still works and hands back the default document
    assert store.load() == Document.default()


def test_reset_overwrites_document(store: DocumentStore) -> None:
    doc = Document.default()
    doc.tasks.append(Task(id="t1", text="x", done=False, created_at=_ts(2024, 1, 1), updated_at=_ts(2024, 1, 1)))
    store.save(doc)

    store.reset()

    assert store.load() == Document.default()


def test_each_storage_key_is_independent(tmp_path: Path) -> None:
    a = DocumentStore(tmp_path / "db.sqlite3", storage_key="A")
    b = DocumentStore(tmp_path / "db.sqlite3", storage_key="B")
    doc = Document.default()
    doc.tasks.append(Task(id="t1", text="x", done=False, created_at=_ts(2024, 1, 1), updated_at=_ts(2024, 1, 1)))

    a.save(doc)

    assert len(a.load().tasks) == 1
    assert b.load().tasks == []


def test_failed_read_does_not_overwrite_stored_document(tmp_path: Path) -> None:
    store = FlakyReadStore(tmp_path / "db.sqlite3")
    repo = TaskRepository(store)
    repo.add_task("keep me")
    before = store.read_raw()

    store.failures = 1
    result = store.load_with_report()

    assert result.status is LoadStatus.RESET
    assert result.document == Document.default()
    assert "read failed" in result.corrections[0]
    assert store.read_raw() == before
    assert [t.text for t in repo.get_tasks()] == ["keep me"]


def test_missing_document_is_still_persisted_after_a_failed_read(tmp_path: Path) -> None:
    store = FlakyReadStore(tmp_path / "db.sqlite3", failures=1)

    store.load()
    assert store.read_raw() is None

    store.load()
    assert store.read_raw() == Document.default().to_json()
