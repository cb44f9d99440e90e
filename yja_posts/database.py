import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional


_ROOT = Path(__file__).resolve().parent.parent
_DEFAULT_DB = _ROOT / "data" / "posts.db"

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the key-value provider cannot be read or written."""


def db_path() -> Path:
    return Path(os.environ.get("POSTS_DB_PATH", str(_DEFAULT_DB)))


def _configure(conn: sqlite3.Connection) -> None:
    # Some environments restrict SQLite's default file locking/journaling.
    conn.execute("PRAGMA journal_mode=MEMORY")


def init_db(path: Optional[Path] = None) -> None:
    target = path or db_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(target) as conn:
        _configure(conn)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )


@contextmanager
def get_conn(path: Optional[Path] = None):
    conn = sqlite3.connect(path or db_path())
    try:
        _configure(conn)
        yield conn
    finally:
        conn.close()


class SqliteKeyValueStore:
    """String values keyed by name, kept in the ``kv_store`` table."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or db_path()
        init_db(self.path)

    def get(self, key: str) -> Optional[str]:
        try:
            with get_conn(self.path) as conn:
                cur = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to read {key!r}: {exc}") from exc
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with get_conn(self.path) as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, datetime.utcnow().isoformat()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            logger.error("[kv_write_failed] path=%s key=%s error=%s", self.path, key, repr(exc))
            raise StorageError(f"failed to write {key!r}: {exc}") from exc
