# tests/conftest.py

from __future__ import annotations

from datetime import UTC
from pathlib import Path
from types import SimpleNamespace

import pytest

from lockin.storage.document_store import DocumentStore
from lockin.study.aggregator import Aggregator
from lockin.study.session_repo import SessionRepository
from lockin.tasks.task_repo import TaskRepository
from lockin.timer.timer_models import TimerPreset

from .fakes import FakeClock, FakeTicker


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap and command modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="lockin-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "lockin.sqlite3",
        storage_key="LockInData",
        heartbeat_seconds=1.0,
        presets=(TimerPreset.from_minutes(25, 5), TimerPreset.from_minutes(50, 10)),
        timezone="UTC",
        completed_preview=3,
        tzinfo=lambda: UTC,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ticker() -> FakeTicker:
    return FakeTicker()


@pytest.fixture()
def store(settings: SimpleNamespace) -> DocumentStore:
    """Real SQLite store: its behavior is part of what we want to test."""
    return DocumentStore(settings.db_path, storage_key=settings.storage_key)


@pytest.fixture()
def tasks(store: DocumentStore, clock: FakeClock) -> TaskRepository:
    return TaskRepository(store, clock=clock)


@pytest.fixture()
def sessions(store: DocumentStore, clock: FakeClock) -> SessionRepository:
    return SessionRepository(store, clock=clock)


@pytest.fixture()
def aggregator(sessions: SessionRepository) -> Aggregator:
    return Aggregator(sessions, tz=UTC)
