# src/lockin/tasks/task_repo.py

from __future__ import annotations

import logging

from ..core.ports import Clock, DocumentRepo
from ..storage.models import Task, new_id, normalize_timestamp, utc_now

logger = logging.getLogger(__name__)


class TaskRepository:
    """
    CRUD over the tasks slice of the document.

    Ordering: most recently created or modified task first. Every mutation
    reloads the document, changes it and writes it back whole; calls that
    change nothing do not write.
    """

    def __init__(self, store: DocumentRepo, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def get_tasks(self) -> list[Task]:
        return self._store.load().tasks

    def get_task(self, task_id: str) -> Task | None:
        for t in self._store.load().tasks:
            if t.id == task_id:
                return t
        return None

    def active_tasks(self) -> list[Task]:
        return [t for t in self.get_tasks() if not t.done]

    def completed_tasks(self) -> list[Task]:
        return [t for t in self.get_tasks() if t.done]

    def resolve_id(self, prefix: str) -> str | None:
        """Full id for an exact id or a unique id prefix."""
        prefix = (prefix or "").strip()
        if not prefix:
            return None
        ids = [t.id for t in self.get_tasks()]
        if prefix in ids:
            return prefix
        matches = [i for i in ids if i.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None

    def add_task(self, text: str) -> Task:
        text = (text or "").strip()
        if not text:
            raise ValueError("Task text cannot be empty.")

        now = normalize_timestamp(self._clock())
        task = Task(id=new_id(), text=text, done=False, created_at=now, updated_at=now)

        doc = self._store.load()
        doc.tasks.insert(0, task)
        self._store.save(doc)
        logger.debug("Task added id=%s", task.id)
        return task

    def update_task(self, task_id: str, *, text: str | None = None, done: bool | None = None) -> Task | None:
        """
        Apply the given fields. Returns None (and writes nothing) for an unknown id.

        A real change refreshes updated_at and moves the task to the head;
        an update with identical values leaves the task where it was.
        """
        if text is not None:
            text = text.strip()
            if not text:
                raise ValueError("Task text cannot be empty.")

        doc = self._store.load()
        idx = next((i for i, t in enumerate(doc.tasks) if t.id == task_id), None)
        if idx is None:
            return None

        task = doc.tasks[idx]
        changed = False
        if text is not None and text != task.text:
            task.text = text
            changed = True
        if done is not None and bool(done) != task.done:
            task.done = bool(done)
            changed = True

        if changed:
            task.updated_at = normalize_timestamp(self._clock())
            del doc.tasks[idx]
            doc.tasks.insert(0, task)
            self._store.save(doc)
            logger.debug("Task updated id=%s done=%s", task.id, task.done)
        return task

    def delete_task(self, task_id: str) -> bool:
        doc = self._store.load()
        kept = [t for t in doc.tasks if t.id != task_id]
        if len(kept) == len(doc.tasks):
            return False
        doc.tasks = kept
        self._store.save(doc)
        logger.debug("Task deleted id=%s", task_id)
        return True

    def clear_completed_tasks(self) -> int:
        """Remove every done task; returns how many were removed."""
        doc = self._store.load()
        kept = [t for t in doc.tasks if not t.done]
        removed = len(doc.tasks) - len(kept)
        if removed:
            doc.tasks = kept
            self._store.save(doc)
            logger.info("Cleared %d completed task(s).", removed)
        return removed
