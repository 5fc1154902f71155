"""Local persistent key-value storage for offline state.

Values are whole JSON documents: callers serialize the full structure and
write it once, never patch part of a document.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from fresherflow.errors import StorageError

logger = logging.getLogger("fresherflow.storage")


class LocalStore:
    """Minimal string key/value interface (localStorage-shaped)."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryLocalStore(LocalStore):
    """Process-local store, used in tests and when no disk is available."""

    def __init__(self, max_value_bytes: Optional[int] = None):
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()
        self.max_value_bytes = max_value_bytes

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.max_value_bytes is not None and len(value.encode("utf-8")) > self.max_value_bytes:
            raise StorageError(f"Quota exceeded writing {key!r}")
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class SQLiteLocalStore(LocalStore):
    """SQLite-backed store: one row per key in a single ``kv`` table."""

    def __init__(self, db_path: str = "data/offline.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._connect()
        self._create_tables()

    def _connect(self):
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL")

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            );
        """)
        self.conn.commit()

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key!r}: {e}") from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._lock:
                self.conn.execute(
                    """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, datetime('now'))
                       ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
                    (key, value),
                )
                self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with self._lock:
                self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to remove {key!r}: {e}") from e

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
