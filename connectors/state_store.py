"""
SQLite-based state store for sync state.

One row per (source, root) holds the outcome of the last completed run:
- last_sync_at
- documents_found / documents_indexed / documents_skipped
- degraded_links
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Iterator

SCHEMA = """
    CREATE TABLE IF NOT EXISTS sync_state (
        source TEXT NOT NULL,
        root TEXT NOT NULL,
        state_json TEXT NOT NULL DEFAULT '{}',
        updated_at TEXT NOT NULL,
        PRIMARY KEY (source, root)
    )
"""


class StateStore:
    """
    Sync state persisted in SQLite.

    Thread-safe; a connection is opened per call, so writes may be pushed to a
    worker thread.
    """

    def __init__(self, db_path: str = "data/state.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        with self._connection() as conn:
            conn.execute(SCHEMA)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            finally:
                conn.close()

    def get_state(self, source: str, root: str) -> dict | None:
        """
        Last stored state for a folder, with `_updated_at` added.

        Returns None if the folder was never synced.
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT state_json, updated_at FROM sync_state WHERE source = ? AND root = ?",
                (source, root),
            ).fetchone()

        if row is None:
            return None
        state = json.loads(row["state_json"])
        state["_updated_at"] = row["updated_at"]
        return state

    def set_state(self, source: str, root: str, state: dict) -> None:
        """Replace the stored state. Keys starting with `_` are not persisted."""
        payload = {k: v for k, v in state.items() if not k.startswith("_")}
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_state (source, root, state_json, updated_at) "
                "VALUES (?, ?, ?, ?)",
                (source, root, json.dumps(payload), datetime.now(timezone.utc).isoformat()),
            )

    def update_state(self, source: str, root: str, patch: dict) -> None:
        """Merge `patch` into the stored state."""
        current = self.get_state(source, root) or {}
        current.update(patch)
        self.set_state(source, root, current)
