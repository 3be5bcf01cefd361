# services/store.py
"""
SQLite persistence for missions, chat turns and the gallery.

One short-lived connection per operation, committed on exit, so the store can
be shared by FastAPI's worker threads without extra locking. The three tables
are independent; no operation spans more than one row write.
"""
from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from services.errors import NotFound, PersistenceError

log = logging.getLogger(__name__)

MISSION_STATUSES = ("pending", "completed")
CHAT_ROLES = ("user", "model")
GALLERY_KINDS = ("uploaded", "generated")

STARTER_MISSIONS = (
    ("Say hi to SoloMan in Chat! 👋", "Start your first conversation."),
    ("Ask for an avatar of a Dragon! 🐉", "Use 'show me' in chat."),
    ("Complete your first mission! 🏆", "Click the circle to finish."),
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  title TEXT NOT NULL,
  description TEXT,
  status TEXT DEFAULT 'pending',
  created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS chat_history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  role TEXT NOT NULL,
  content TEXT NOT NULL,
  timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS gallery (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  type TEXT NOT NULL,
  url TEXT NOT NULL,
  prompt TEXT,
  timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


def _mission(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"] or "",
        "status": row["status"],
        "created_at": row["created_at"],
    }


def _gallery(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "type": row["type"],
        "kind": row["type"],
        "url": row["url"],
        "prompt": row["prompt"],
        "timestamp": row["timestamp"],
    }


class Store:
    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)

    @contextmanager
    def _db(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self.db_path)) as con:
                con.row_factory = sqlite3.Row
                with con:
                    yield con
        except sqlite3.Error as e:
            log.error("[store] %s: %s", type(e).__name__, e)
            raise PersistenceError(str(e)) from e

    def init_schema(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._db() as con:
            con.executescript(SCHEMA)
        log.info("[store] ready at %s", self.db_path)

    def ping(self) -> bool:
        try:
            with self._db() as con:
                con.execute("SELECT 1").fetchone()
            return True
        except PersistenceError:
            return False

    # --- missions ---
    def list_missions(self, seed: bool = True) -> List[Dict[str, Any]]:
        with self._db() as con:
            if seed and con.execute("SELECT COUNT(*) FROM tasks").fetchone()[0] == 0:
                con.executemany(
                    "INSERT INTO tasks (title, description) VALUES (?, ?)", STARTER_MISSIONS
                )
                log.info("[store] seeded %d starter missions", len(STARTER_MISSIONS))
            rows = con.execute("SELECT * FROM tasks ORDER BY created_at DESC, id DESC").fetchall()
        return [_mission(r) for r in rows]

    def get_mission(self, mission_id: int) -> Dict[str, Any]:
        with self._db() as con:
            row = con.execute("SELECT * FROM tasks WHERE id = ?", (mission_id,)).fetchone()
        if row is None:
            raise NotFound(f"mission {mission_id}", message="Mission not found")
        return _mission(row)

    def add_mission(self, title: str, description: Optional[str] = None) -> Dict[str, Any]:
        with self._db() as con:
            cur = con.execute(
                "INSERT INTO tasks (title, description) VALUES (?, ?)", (title, description or "")
            )
            row = con.execute("SELECT * FROM tasks WHERE id = ?", (cur.lastrowid,)).fetchone()
        return _mission(row)

    def set_mission_status(self, mission_id: int, status: str) -> None:
        if status not in MISSION_STATUSES:
            raise ValueError(f"invalid mission status: {status!r}")
        with self._db() as con:
            cur = con.execute("UPDATE tasks SET status = ? WHERE id = ?", (status, mission_id))
        if cur.rowcount == 0:
            raise NotFound(f"mission {mission_id}", message="Mission not found")

    def delete_mission(self, mission_id: int) -> None:
        with self._db() as con:
            cur = con.execute("DELETE FROM tasks WHERE id = ?", (mission_id,))
        if cur.rowcount == 0:
            raise NotFound(f"mission {mission_id}", message="Mission not found")

    # --- chat ---
    def chat_history(self, limit: int = 0) -> List[Dict[str, str]]:
        with self._db() as con:
            if limit > 0:
                rows = con.execute(
                    "SELECT role, content FROM ("
                    " SELECT id, role, content, timestamp FROM chat_history"
                    " ORDER BY timestamp DESC, id DESC LIMIT ?"
                    ") ORDER BY timestamp ASC, id ASC",
                    (limit,),
                ).fetchall()
            else:
                rows = con.execute(
                    "SELECT role, content FROM chat_history ORDER BY timestamp ASC, id ASC"
                ).fetchall()
        return [{"role": r["role"], "content": r["content"]} for r in rows]

    def append_turn(self, role: str, content: str) -> int:
        if role not in CHAT_ROLES:
            raise ValueError(f"invalid chat role: {role!r}")
        with self._db() as con:
            cur = con.execute(
                "INSERT INTO chat_history (role, content) VALUES (?, ?)", (role, content)
            )
        return cur.lastrowid

    def ensure_welcome(self, welcome: str) -> List[Dict[str, str]]:
        """History as the UI should see it: never empty."""
        history = self.chat_history()
        if history:
            return history
        self.append_turn("model", welcome)
        return [{"role": "model", "content": welcome}]

    def clear_chat(self) -> int:
        with self._db() as con:
            cur = con.execute("DELETE FROM chat_history")
        log.info("[store] cleared %d chat turns", cur.rowcount)
        return cur.rowcount

    # --- gallery ---
    def add_gallery(self, url: str, prompt: Optional[str] = None, kind: str = "uploaded") -> int:
        if kind not in GALLERY_KINDS:
            raise ValueError(f"invalid gallery type: {kind!r}")
        with self._db() as con:
            cur = con.execute(
                "INSERT INTO gallery (type, url, prompt) VALUES (?, ?, ?)", (kind, url, prompt or None)
            )
        return cur.lastrowid

    def list_gallery(self) -> List[Dict[str, Any]]:
        with self._db() as con:
            rows = con.execute("SELECT * FROM gallery ORDER BY timestamp DESC, id DESC").fetchall()
        return [_gallery(r) for r in rows]

    def delete_gallery(self, entry_id: int) -> None:
        with self._db() as con:
            cur = con.execute("DELETE FROM gallery WHERE id = ?", (entry_id,))
        if cur.rowcount == 0:
            raise NotFound(f"gallery {entry_id}", message="Image not found")
