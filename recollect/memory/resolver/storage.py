"""Fact store protocol and a SQLite keyword-search implementation."""

from __future__ import annotations

import json
import re
import sqlite3
import threading
import uuid
from datetime import date, datetime
from typing import List, Mapping, MutableMapping, Optional, Protocol, Sequence

_KEYWORD_RE = re.compile(r"\w+", re.UNICODE)


class FactStore(Protocol):
    """Per-user fact persistence consumed by the engine.

    Every method takes ``user_id`` as a filter; an id belonging to another
    user behaves exactly like a missing id.
    """

    def search_facts(self, user_id: str, term: str) -> Sequence[Mapping[str, object]]:
        ...

    def update_fact(self, user_id: str, memory_id: str, new_text: str) -> bool:
        ...

    def delete_fact(self, user_id: str, memory_id: str) -> bool:
        ...

    def append_fact(self, user_id: str, text: str, memory_date: Optional[str] = None) -> str:
        ...


def extract_keywords(term: str) -> List[str]:
    """Lowercased keywords of ``term``; one-character tokens are ignored."""

    seen: List[str] = []
    for token in _KEYWORD_RE.findall(term.lower()):
        if len(token) >= 2 and token not in seen:
            seen.append(token)
    return seen


def count_matches(text: str, keywords: Sequence[str]) -> int:
    lowered = text.lower()
    return sum(lowered.count(keyword) for keyword in keywords)


def _fold_case(value: object) -> object:
    return value.lower() if isinstance(value, str) else value


class FactDatabase:
    """Small SQLite wrapper that stores per-user memory facts."""

    def __init__(self, db_path: str = ":memory:") -> None:
        self.connection = sqlite3.connect(db_path, check_same_thread=False)
        self.connection.row_factory = sqlite3.Row
        # SQLite LOWER() only folds ASCII.
        self.connection.create_function("fold_case", 1, _fold_case, deterministic=True)
        self._lock = threading.Lock()
        self._create_schema()

    def _create_schema(self) -> None:
        with self._lock:
            cur = self.connection.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS memories (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    text TEXT NOT NULL,
                    memory_date TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_memories_user_id
                ON memories(user_id)
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS error_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    location TEXT NOT NULL,
                    message TEXT NOT NULL,
                    context TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            self.connection.commit()

    def append_fact(self, user_id: str, text: str, memory_date: Optional[str] = None) -> str:
        """Insert a new fact and return its identifier."""

        now = datetime.utcnow().isoformat()
        with self._lock:
            memory_id = str(uuid.uuid4())
            self.connection.execute(
                """
                INSERT INTO memories(id, user_id, text, memory_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    memory_id,
                    user_id,
                    text,
                    memory_date or date.today().isoformat(),
                    now,
                    now,
                ),
            )
            self.connection.commit()
            return memory_id

    def search_facts(self, user_id: str, term: str) -> List[Mapping[str, object]]:
        """Return the user's facts containing any keyword of ``term``.

        Rows come back in insertion order with ``matchCount`` set to the total
        number of keyword occurrences; rows without a match are skipped.
        """

        keywords = extract_keywords(term or "")
        if not keywords:
            return []
        clause = " OR ".join("instr(fold_case(text), ?) > 0" for _ in keywords)
        params: List[object] = [user_id]
        params.extend(keywords)
        with self._lock:
            rows = self.connection.execute(
                f"SELECT rowid, * FROM memories WHERE user_id = ? AND ({clause}) ORDER BY rowid ASC",
                params,
            ).fetchall()
        hits: List[Mapping[str, object]] = []
        for row in rows:
            score = count_matches(row["text"], keywords)
            if score == 0:
                continue
            hits.append(
                {
                    "id": row["id"],
                    "text": row["text"],
                    "createdAt": row["created_at"],
                    "memoryDate": row["memory_date"],
                    "column": "text",
                    "rowId": row["rowid"],
                    "matchCount": score,
                }
            )
        return hits

    def update_fact(self, user_id: str, memory_id: str, new_text: str) -> bool:
        now = datetime.utcnow().isoformat()
        with self._lock:
            cur = self.connection.execute(
                """
                UPDATE memories
                SET text = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (new_text, now, memory_id, user_id),
            )
            self.connection.commit()
            return cur.rowcount > 0

    def delete_fact(self, user_id: str, memory_id: str) -> bool:
        with self._lock:
            cur = self.connection.execute(
                "DELETE FROM memories WHERE id = ? AND user_id = ?",
                (memory_id, user_id),
            )
            self.connection.commit()
            return cur.rowcount > 0

    def fetch_fact(self, user_id: str, memory_id: str) -> Optional[Mapping[str, object]]:
        with self._lock:
            row = self.connection.execute(
                "SELECT * FROM memories WHERE id = ? AND user_id = ?",
                (memory_id, user_id),
            ).fetchone()
        return dict(row) if row else None

    # ------------------------------------------------------------------
    # Operator error log
    # ------------------------------------------------------------------
    def record_error(
        self,
        location: str,
        error: BaseException,
        context: Optional[Mapping[str, object]] = None,
    ) -> None:
        now = datetime.utcnow().isoformat()
        with self._lock:
            self.connection.execute(
                """
                INSERT INTO error_log(location, message, context, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    location,
                    f"{type(error).__name__}: {error}",
                    json.dumps(dict(context or {}), ensure_ascii=False, default=str),
                    now,
                ),
            )
            self.connection.commit()

    def list_errors(self) -> List[MutableMapping[str, object]]:
        with self._lock:
            rows = self.connection.execute("SELECT * FROM error_log ORDER BY id ASC").fetchall()
        errors: List[MutableMapping[str, object]] = []
        for row in rows:
            entry = dict(row)
            entry["context"] = json.loads(row["context"]) if row["context"] else {}
            errors.append(entry)
        return errors


__all__ = ["FactDatabase", "FactStore", "count_matches", "extract_keywords"]
