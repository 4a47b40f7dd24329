"""SQLite-backed storage for the active session and ended-session history."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from bac_engine.config import DEFAULT_CONFIG, EngineConfig
from bac_engine.errors import PersistenceError
from bac_engine.session import Session

logger = logging.getLogger(__name__)


def init_db(db_path: str) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS active_sessions (
                profile_id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL UNIQUE,
                profile_id TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                ended_at TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_session_history_profile_id ON session_history(profile_id)")
        conn.commit()


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


def save_active(db_path: str, *, profile_id: str, session_id: str, payload: dict[str, Any]) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO active_sessions (profile_id, session_id, payload_json, updated_at)
            VALUES (?, ?, ?, datetime('now'))
            ON CONFLICT(profile_id) DO UPDATE SET
                session_id = excluded.session_id,
                payload_json = excluded.payload_json,
                updated_at = excluded.updated_at
            """,
            (profile_id, session_id, _dumps(payload)),
        )
        conn.commit()


def load_active(db_path: str, *, profile_id: str) -> dict[str, Any] | None:
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(
            "SELECT payload_json FROM active_sessions WHERE profile_id = ?",
            (profile_id,),
        ).fetchone()
    if row is None:
        return None
    return json.loads(row[0])


def move_to_history(
    db_path: str,
    *,
    profile_id: str,
    session_id: str,
    ended_at: str,
    payload: dict[str, Any],
) -> None:
    """Insert into history and clear the active row in one transaction."""
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT OR REPLACE INTO session_history (session_id, profile_id, payload_json, ended_at)
            VALUES (?, ?, ?, ?)
            """,
            (session_id, profile_id, _dumps(payload), ended_at),
        )
        conn.execute(
            "DELETE FROM active_sessions WHERE profile_id = ? AND session_id = ?",
            (profile_id, session_id),
        )
        conn.commit()


def list_history(db_path: str, *, profile_id: str, limit: int = 50) -> list[dict[str, Any]]:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            """
            SELECT payload_json
            FROM session_history
            WHERE profile_id = ?
            ORDER BY ended_at DESC, id DESC
            LIMIT ?
            """,
            (profile_id, max(1, min(limit, 200))),
        ).fetchall()
    return [json.loads(row["payload_json"]) for row in rows]


def delete_history(db_path: str, *, profile_id: str, session_id: str) -> bool:
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM session_history WHERE profile_id = ? AND session_id = ?",
            (profile_id, session_id),
        )
        conn.commit()
        return cur.rowcount > 0


class SqliteSessionStore:
    """Persistence adapter: sessions in, sessions out, sqlite errors wrapped."""

    def __init__(self, db_path: str, config: EngineConfig = DEFAULT_CONFIG):
        self.db_path = db_path
        self.config = config
        self._call(init_db, db_path)

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (sqlite3.Error, json.JSONDecodeError) as exc:
            logger.warning("session store %s failed: %s", fn.__name__, exc)
            raise PersistenceError(f"{fn.__name__} failed: {exc}") from exc

    def save_session(self, session: Session) -> None:
        self._call(
            save_active,
            self.db_path,
            profile_id=session.profile.id,
            session_id=session.id,
            payload=session.to_dict(),
        )

    def load_active_session(self, profile_id: str) -> Session | None:
        payload = self._call(load_active, self.db_path, profile_id=profile_id)
        if payload is None:
            return None
        return Session.from_dict(payload, self.config)

    def append_to_history(self, session: Session) -> None:
        if session.end_time is None:
            raise ValueError("only ended sessions go to history")
        self._call(
            move_to_history,
            self.db_path,
            profile_id=session.profile.id,
            session_id=session.id,
            ended_at=session.end_time.isoformat(),
            payload=session.to_dict(),
        )

    def list_history(self, profile_id: str, limit: int = 50) -> list[Session]:
        payloads = self._call(list_history, self.db_path, profile_id=profile_id, limit=limit)
        return [Session.from_dict(p, self.config) for p in payloads]

    def delete_session(self, profile_id: str, session_id: str) -> bool:
        return self._call(delete_history, self.db_path, profile_id=profile_id, session_id=session_id)
