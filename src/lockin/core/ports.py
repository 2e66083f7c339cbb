# src/lockin/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

Repositories, the aggregator and the timer engine depend on Protocols instead of
concrete implementations. This keeps storage swappable and makes testing easier.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from ..storage.models import Document, Session, UnfinishedSession

Clock = Callable[[], datetime]
# Returns "now" as an aware UTC datetime.


class DocumentRepo(Protocol):
    """The single persistence boundary: whole-document load and save."""

    def load(self) -> Document: ...
    def save(self, document: Document) -> bool: ...


class SessionSource(Protocol):
    """Read side used by the aggregator."""

    def get_sessions(self) -> list[Session]: ...


class SessionRepo(SessionSource, Protocol):
    """What the timer engine needs from the session repository."""

    def add_session(self, start: datetime | str, end: datetime | str) -> Session: ...
    def get_unfinished_session(self) -> UnfinishedSession | None: ...
    def set_unfinished_session(self, start: datetime | str) -> UnfinishedSession: ...
    def update_last_active(self) -> None: ...
    def clear_unfinished_session(self) -> None: ...


class Ticker(Protocol):
    """
    Cancellable repeating task.

    start(callback) arms the ticker (replacing any previous callback);
    cancel() stops it. Both are idempotent.
    """

    @property
    def running(self) -> bool: ...

    def start(self, callback: Callable[[], None]) -> None: ...
    def cancel(self) -> None: ...
