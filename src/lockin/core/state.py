# src/lockin/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..storage.document_store import DocumentStore
from ..study.aggregator import Aggregator
from ..study.session_repo import SessionRepository
from ..tasks.task_repo import TaskRepository
from ..timer.phase_engine import PhaseEngine


@dataclass
class AppState:
    # Settings object (real Settings or a test double with the same attributes).
    settings: Any

    store: DocumentStore
    tasks: TaskRepository
    sessions: SessionRepository
    aggregator: Aggregator
    engine: PhaseEngine

    # Held by the console REPL and by the ticker callback (different threads).
    lock: threading.RLock = field(default_factory=threading.RLock)
