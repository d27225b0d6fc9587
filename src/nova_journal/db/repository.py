"""Repository for namespaced key-value entries (the persisted index lives here)."""

from __future__ import annotations

import sqlite3


class KeyValueRepository:
    """Data access layer over the ``kv_store`` table.

    Wraps an open sqlite3.Connection owned by the caller. Every write is a
    single committed statement, so readers see either the old value or the
    new one, never a partial write.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: str) -> str | None:
        """Return the stored value for *key*, or None if missing."""
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def put(self, key: str, value: str) -> None:
        """Insert or replace the value stored under *key*."""
        self._conn.execute(
            """
            INSERT INTO kv_store (key, value)
            VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = datetime('now')
            """,
            (key, value),
        )
        self._conn.commit()

    def delete(self, key: str) -> bool:
        """Delete *key*. Returns True if a row was removed."""
        cur = self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self._conn.commit()
        return cur.rowcount > 0

    def list_keys(self, prefix: str = "") -> list[str]:
        """Return all keys starting with *prefix*, sorted."""
        rows = self._conn.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
        return [r["key"] for r in rows]
