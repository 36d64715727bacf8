from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
from contextlib import closing
from typing import Dict, List, Optional, Protocol, Tuple

from .session import SessionState

LOGGER = logging.getLogger("shoggoths.store")

# Stores keep the last good snapshot of each session as JSON. They never hold
# live SessionState objects, so a failed mutation cannot corrupt what is stored.


class SessionStore(Protocol):
    def save(self, session: SessionState, now: Optional[float] = None) -> None: ...

    def load(self, session_id: str) -> Optional[Dict[str, object]]: ...

    def delete(self, session_id: str) -> None: ...

    def stale_ids(self, older_than: float) -> List[str]: ...


class MemorySessionStore:
    def __init__(self) -> None:
        self._rows: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def save(self, session: SessionState, now: Optional[float] = None) -> None:
        blob = json.dumps(session.to_dict())
        with self._lock:
            self._rows[session.session_id] = (blob, time.time() if now is None else now)

    def load(self, session_id: str) -> Optional[Dict[str, object]]:
        with self._lock:
            row = self._rows.get(session_id)
        if row is None:
            return None
        return json.loads(row[0])

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._rows.pop(session_id, None)

    def stale_ids(self, older_than: float) -> List[str]:
        with self._lock:
            return [sid for sid, (_, updated) in self._rows.items() if updated < older_than]

    def __len__(self) -> int:
        return len(self._rows)


class SqliteSessionStore:
    """One row per session: id, JSON state, updated_at."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.RLock()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS games (
                    id TEXT PRIMARY KEY,
                    state TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
        LOGGER.info("Session store ready at %s", path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def save(self, session: SessionState, now: Optional[float] = None) -> None:
        """Upsert the snapshot, stamped with `now` (wall clock when omitted)."""
        blob = json.dumps(session.to_dict())
        with self._lock, closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO games (id, state, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET state=excluded.state, updated_at=excluded.updated_at
                """,
                (session.session_id, blob, time.time() if now is None else now),
            )

    def load(self, session_id: str) -> Optional[Dict[str, object]]:
        with self._lock, closing(self._connect()) as conn, conn:
            row = conn.execute("SELECT state FROM games WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            return None
        return json.loads(row["state"])

    def delete(self, session_id: str) -> None:
        with self._lock, closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM games WHERE id = ?", (session_id,))

    def stale_ids(self, older_than: float) -> List[str]:
        with self._lock, closing(self._connect()) as conn, conn:
            rows = conn.execute("SELECT id FROM games WHERE updated_at < ?", (older_than,)).fetchall()
        return [row["id"] for row in rows]
