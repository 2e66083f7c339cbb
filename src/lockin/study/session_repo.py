# src/lockin/study/session_repo.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.ports import Clock, DocumentRepo
from ..storage.models import (
    Session,
    UnfinishedSession,
    duration_between,
    new_id,
    normalize_timestamp,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)


class SessionRepository:
    """
    Completed study sessions plus the single "unfinished session" slot.

    The slot is the durable trace of a work phase in flight: the timer writes
    it when work starts, refreshes last_active on every heartbeat and folds it
    into a Session when work ends. A slot left behind by a crash is recovered
    on the next engine start.
    """

    def __init__(self, store: DocumentRepo, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    # ---- sessions ----

    def get_sessions(self) -> list[Session]:
        return self._store.load().study.sessions

    def get_session(self, session_id: str) -> Session | None:
        for s in self.get_sessions():
            if s.id == session_id:
                return s
        return None

    def resolve_id(self, prefix: str) -> str | None:
        prefix = (prefix or "").strip()
        if not prefix:
            return None
        ids = [s.id for s in self.get_sessions()]
        if prefix in ids:
            return prefix
        matches = [i for i in ids if i.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None

    def add_session(self, start: datetime | str, end: datetime | str) -> Session:
        start_ts = parse_timestamp(start)
        end_ts = parse_timestamp(end)
        session = Session(
            id=new_id(),
            start=start_ts,
            end=end_ts,
            duration_sec=duration_between(start_ts, end_ts),
        )

        doc = self._store.load()
        doc.study.sessions.insert(0, session)
        self._store.save(doc)
        logger.info("Session recorded id=%s duration=%ss", session.id, session.duration_sec)
        return session

    def update_session(
        self,
        session_id: str,
        *,
        start: datetime | str | None = None,
        end: datetime | str | None = None,
    ) -> Session | None:
        new_start = parse_timestamp(start) if start is not None else None
        new_end = parse_timestamp(end) if end is not None else None

        doc = self._store.load()
        sessions = doc.study.sessions
        idx = next((i for i, s in enumerate(sessions) if s.id == session_id), None)
        if idx is None:
            return None

        old = sessions[idx]
        start_ts = new_start or old.start
        end_ts = new_end or old.end
        updated = Session(
            id=old.id,
            start=start_ts,
            end=end_ts,
            duration_sec=duration_between(start_ts, end_ts),
        )
        del sessions[idx]
        sessions.insert(0, updated)
        self._store.save(doc)
        logger.debug("Session updated id=%s duration=%ss", updated.id, updated.duration_sec)
        return updated

    def delete_session(self, session_id: str) -> bool:
        doc = self._store.load()
        kept = [s for s in doc.study.sessions if s.id != session_id]
        if len(kept) == len(doc.study.sessions):
            return False
        doc.study.sessions = kept
        self._store.save(doc)
        logger.debug("Session deleted id=%s", session_id)
        return True

    # ---- unfinished slot ----

    def get_unfinished_session(self) -> UnfinishedSession | None:
        return self._store.load().study.unfinished

    def set_unfinished_session(self, start: datetime | str) -> UnfinishedSession:
        unfinished = UnfinishedSession(
            start=parse_timestamp(start),
            last_active=normalize_timestamp(self._clock()),
        )
        doc = self._store.load()
        doc.study.unfinished = unfinished
        self._store.save(doc)
        return unfinished

    def update_last_active(self) -> None:
        doc = self._store.load()
        if doc.study.unfinished is None:
            return
        doc.study.unfinished.last_active = normalize_timestamp(self._clock())
        self._store.save(doc)

    def clear_unfinished_session(self) -> None:
        doc = self._store.load()
        if doc.study.unfinished is None:
            return
        doc.study.unfinished = None
        self._store.save(doc)
