# tests/test_task_repo.py

from __future__ import annotations

import pytest

from lockin.storage.document_store import DocumentStore
from lockin.tasks.task_repo import TaskRepository

from .fakes import CountingStore, FakeClock


def test_add_task_trims_and_inserts_at_head(tasks: TaskRepository, clock: FakeClock) -> None:
    t0 = clock.now
    first = tasks.add_task("  read chapter 3 ")
    clock.advance(5)
    second = tasks.add_task("write notes")

    assert first.text == "read chapter 3"
    assert first.done is False
    assert first.created_at == first.updated_at == t0
    assert [t.id for t in tasks.get_tasks()] == [second.id, first.id]


@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
def test_add_task_rejects_blank_text(tasks: TaskRepository, store: DocumentStore, text: str) -> None:
    with pytest.raises(ValueError):
        tasks.add_task(text)
    assert tasks.get_tasks() == []


def test_toggle_done_moves_task_to_head(tasks: TaskRepository, clock: FakeClock) -> None:
    a = tasks.add_task("a")
    b = tasks.add_task("b")
    clock.advance(60)

    updated = tasks.update_task(a.id, done=True)

    assert updated is not None
    assert updated.done is True
    assert updated.updated_at == clock.now
    assert updated.created_at == a.created_at
    assert [t.id for t in tasks.get_tasks()] == [a.id, b.id]
    assert [t.id for t in tasks.completed_tasks()] == [a.id]
    assert [t.id for t in tasks.active_tasks()] == [b.id]


def test_edit_text_rejects_blank(tasks: TaskRepository) -> None:
    a = tasks.add_task("a")

    with pytest.raises(ValueError):
        tasks.update_task(a.id, text="   ")

    assert tasks.get_task(a.id).text == "a"


def test_unknown_id_changes_nothing(tasks: TaskRepository, store: DocumentStore) -> None:
    tasks.add_task("a")
    before = store.read_raw()

    assert tasks.update_task("nope", done=True) is None
    assert tasks.delete_task("nope") is False
    assert store.read_raw() == before


def test_update_with_same_values_does_not_write(store: DocumentStore, clock: FakeClock) -> None:
    counting = CountingStore(store)
    repo = TaskRepository(counting, clock=clock)
    a = repo.add_task("a")
    b = repo.add_task("b")
    saves = counting.saves
    clock.advance(30)

    result = repo.update_task(a.id, text="a", done=False)

    assert result is not None
    assert result.updated_at == a.updated_at
    assert counting.saves == saves
    assert [t.id for t in repo.get_tasks()] == [b.id, a.id]


def test_delete_task(tasks: TaskRepository) -> None:
    a = tasks.add_task("a")
    b = tasks.add_task("b")

    assert tasks.delete_task(a.id) is True
    assert [t.id for t in tasks.get_tasks()] == [b.id]


def test_clear_completed_keeps_active_order(tasks: TaskRepository) -> None:
    a = tasks.add_task("a")
    b = tasks.add_task("b")
    c = tasks.add_task("c")
    d = tasks.add_task("d")
    tasks.update_task(b.id, done=True)
    tasks.update_task(d.id, done=True)
    order_before = [t.id for t in tasks.active_tasks()]

    assert tasks.clear_completed_tasks() == 2

    assert [t.id for t in tasks.get_tasks()] == order_before == [c.id, a.id]


def test_clear_completed_without_done_tasks_does_not_write(store: DocumentStore, clock: FakeClock) -> None:
    counting = CountingStore(store)
    repo = TaskRepository(counting, clock=clock)
    repo.add_task("a")
    saves = counting.saves

    assert repo.clear_completed_tasks() == 0
    assert counting.saves == saves


def test_resolve_id_by_unique_prefix(tasks: TaskRepository) -> None:
    a = tasks.add_task("a")

    assert tasks.resolve_id(a.id) == a.id
    assert tasks.resolve_id(a.id[:8]) == a.id
    assert tasks.resolve_id("") is None
    assert tasks.resolve_id("zzzz-not-there") is None


def test_tasks_survive_a_new_repository(store: DocumentStore, clock: FakeClock) -> None:
    TaskRepository(store, clock=clock).add_task("persisted")

    again = TaskRepository(DocumentStore(store.db_path, storage_key=store.storage_key))

    assert [t.text for t in again.get_tasks()] == ["persisted"]
