# src/lockin/storage/document_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

from .coercion import LoadResult, LoadStatus, parse_document
from .models import STORAGE_KEY, Document

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    SQLite key-value store holding the whole app state as one JSON document.

    Contract:
    - load() never raises for missing or corrupt data; it falls back to the
      default document and persists it right away (a failed read also
      returns the default, but writes nothing)
    - save() rewrites the document wholesale; a write failure is logged and
      reported as False, never retried
    - no transactions across calls: every command does its own
      load-mutate-save cycle, and concurrent writers are last-writer-wins

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "lockin.sqlite3", *, storage_key: str = STORAGE_KEY) -> None:
        self._db_path = Path(db_path)
        self._key = storage_key
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error):
            logger.exception("DocumentStore schema init failed db=%s", self._db_path)
        logger.info("DocumentStore ready db=%s key=%s", self._db_path, self._key)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def storage_key(self) -> str:
        return self._key

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def read_raw(self) -> str | None:
        """Stored text of the document, or None when absent."""
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (self._key,)).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def write_raw(self, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self._key, value, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def load_with_report(self) -> LoadResult:
        """Load the document together with the coercion report."""
        try:
            raw = self.read_raw()
        except sqlite3.Error as e:
            # Not a reset: the stored document is left as is.
            logger.exception("DocumentStore read failed db=%s; using default document", self._db_path)
            return LoadResult(
                document=Document.default(),
                status=LoadStatus.RESET,
                corrections=(f"document read failed: {e}",),
            )

        result = parse_document(raw)

        if result.status is LoadStatus.RESET:
            if raw is not None:
                logger.warning("Stored document unreadable (%s), resetting.", "; ".join(result.corrections))
            else:
                logger.info("No stored document under key=%s, creating default.", self._key)
            self.save(result.document)
        elif result.status is LoadStatus.PARTIAL:
            logger.warning(
                "Stored document partially defaulted (%d fields): %s",
                len(result.corrections),
                "; ".join(result.corrections[:10]),
            )

        return result

    def load(self) -> Document:
        return self.load_with_report().document

    def save(self, document: Document) -> bool:
        try:
            self.write_raw(document.to_json())
        except Exception:
            logger.exception("Failed to save document db=%s key=%s", self._db_path, self._key)
            return False
        logger.debug(
            "Document saved tasks=%d sessions=%d unfinished=%s",
            len(document.tasks),
            len(document.study.sessions),
            document.study.unfinished is not None,
        )
        return True

    def reset(self) -> Document:
        """Overwrite the stored document with the default one."""
        doc = Document.default()
        self.save(doc)
        logger.info("Document reset key=%s", self._key)
        return doc
