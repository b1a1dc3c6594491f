"""
sessions/store.py -- SQLite-backed keyed attribute store with per-entry expiry.

Each row maps (session_key, attribute) to a JSON value and an absolute
expires_at. Expired rows read as absent and are deleted on read; a periodic
purge_expired() trims the rest.

The same class backs both physical session stores; they differ only in table
name. Table names come from the fixed _TABLES whitelist, never from input.

Usage:
    store = SessionStore(table="http_sessions")
    store.set("k3y", "user_login_state", {"principal_id": 1}, expires_at=time.time() + 3600)
    store.get("k3y", "user_login_state")   # returns dict or None
    store.remove("k3y", "user_login_state")
    store.purge_expired()
"""

import json
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional

_DEFAULT_DB = Path(__file__).parent / "sessions.db"
_DEFAULT_TTL = 60 * 60  # 1 hour in seconds

PRIMARY_TABLE = "http_sessions"
TOKEN_TABLE = "token_sessions"
_TABLES = frozenset({PRIMARY_TABLE, TOKEN_TABLE})

_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    session_key TEXT NOT NULL,
    attribute   TEXT NOT NULL,
    value       TEXT NOT NULL,
    written_at  REAL NOT NULL,
    expires_at  REAL NOT NULL,
    PRIMARY KEY (session_key, attribute)
);
"""


class SessionStore:
    def __init__(self, db_path: Path | str = _DEFAULT_DB, table: str = PRIMARY_TABLE, ttl: int = _DEFAULT_TTL) -> None:
        if table not in _TABLES:
            raise ValueError(f"Unknown session table: {table!r}")
        self.table = table
        self.ttl = ttl
        # One connection shared across request threads; the lock serializes use.
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        if str(db_path) != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_DDL.format(table=table))
        self._conn.commit()

    def get(self, session_key: str, attribute: str) -> Optional[dict]:
        """Return the stored value if it exists and hasn't expired."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT value, expires_at FROM {self.table} WHERE session_key = ? AND attribute = ?",  # noqa: S608
                (session_key, attribute),
            ).fetchone()
            if row is None:
                return None
            value, expires_at = row
            if time.time() >= expires_at:
                self._delete(session_key, attribute)
                return None
        try:
            data = json.loads(value)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def set(self, session_key: str, attribute: str, value: dict, expires_at: Optional[float] = None) -> None:
        """Store value, replacing any existing entry.

        expires_at is an absolute epoch timestamp. When omitted the store's own
        ttl applies; callers that keep several stores in step pass it explicitly.
        """
        now = time.time()
        if expires_at is None:
            expires_at = now + self.ttl
        with self._lock:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {self.table} "  # noqa: S608
                "(session_key, attribute, value, written_at, expires_at) VALUES (?, ?, ?, ?, ?)",
                (session_key, attribute, json.dumps(value), now, expires_at),
            )
            self._conn.commit()

    def remove(self, session_key: str, attribute: str) -> bool:
        """Delete one attribute. Returns True if a row was removed."""
        with self._lock:
            return self._delete(session_key, attribute) > 0

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of rows removed."""
        with self._lock:
            cursor = self._conn.execute(f"DELETE FROM {self.table} WHERE expires_at <= ?", (time.time(),))  # noqa: S608
            self._conn.commit()
        return cursor.rowcount

    def _delete(self, session_key: str, attribute: str) -> int:
        cursor = self._conn.execute(
            f"DELETE FROM {self.table} WHERE session_key = ? AND attribute = ?",  # noqa: S608
            (session_key, attribute),
        )
        self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        self._conn.close()
