# tests/fakes.py

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from lockin.storage.document_store import DocumentStore
from lockin.storage.models import Document


class FakeClock:
    """
    Deterministic clock for unit tests.

    - Starts at a fixed UTC instant
    - Only moves when advance() is called
    """

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 10, 9, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@dataclass(slots=True)
class FakeTicker:
    """
    Ticker that never fires on its own; tests call fire() or drive engine.tick().
    """

    callback: Callable[[], None] | None = None
    starts: int = 0
    cancels: int = 0

    @property
    def running(self) -> bool:
        return self.callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        self.starts += 1
        self.callback = callback

    def cancel(self) -> None:
        self.cancels += 1
        self.callback = None

    def fire(self, times: int = 1, clock: FakeClock | None = None) -> None:
        for _ in range(times):
            if self.callback is None:
                return
            if clock is not None:
                clock.advance(1)
            self.callback()


class FailingSaveStore(DocumentStore):
    """DocumentStore whose writes always fail (disk full, read-only medium, ...)."""

    def write_raw(self, value: str) -> None:
        raise OSError("disk full")


class FlakyReadStore(DocumentStore):
    """DocumentStore whose next `failures` reads fail as if another process held the lock."""

    def __init__(self, *args, failures: int = 0, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.failures = failures

    def read_raw(self) -> str | None:
        if self.failures > 0:
            self.failures -= 1
            raise sqlite3.OperationalError("database is locked")
        return super().read_raw()


@dataclass(slots=True)
class CountingStore:
    """Wraps a store and counts saves, to assert that no-op calls do not write."""

    inner: DocumentStore
    saves: int = 0

    def load(self) -> Document:
        return self.inner.load()

    def save(self, document: Document) -> bool:
        self.saves += 1
        return self.inner.save(document)


@dataclass(slots=True)
class SignalRecorder:
    events: list[str] = field(default_factory=list)

    def work_complete(self) -> None:
        self.events.append("work_complete")

    def break_complete(self) -> None:
        self.events.append("break_complete")
