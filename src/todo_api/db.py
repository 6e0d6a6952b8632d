from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, List, Optional, Tuple

from .models import TodoEntity
from .repositories import MAX_TODO_ID, ListQuery, Repository
from .schemas import TodoCreate, ensure_utc


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    completed: str = "completed"
    due_date: str = "due_date"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value is not None else None


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return ensure_utc(datetime.fromisoformat(value)) if value is not None else None


def _in_range(todo_id: int) -> bool:
    return 0 < todo_id <= MAX_TODO_ID


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SQLiteRepository(Repository):
    """
    SQLite todo repository. Timestamps are stored as ISO8601 UTC text, so
    lexical ordering on created_at matches chronological ordering.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NULL,
                    {_COLS.completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_completed ON {_COLS.table}({_COLS.completed})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at ON {_COLS.table}({_COLS.created_at})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": int(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "completed": bool(row[_COLS.completed]),
            "due_date": _from_text(row[_COLS.due_date]),
            "created_at": _from_text(row[_COLS.created_at]),  # type: ignore[typeddict-item]
            "updated_at": _from_text(row[_COLS.updated_at]),  # type: ignore[typeddict-item]
        }

    def _fetch(self, conn: sqlite3.Connection, todo_id: int) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,)).fetchone()

    def create(self, data: TodoCreate) -> TodoEntity:
        now = _to_text(datetime.now(timezone.utc))
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.description}, {_COLS.completed},
                    {_COLS.due_date}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (data.title, data.description, 1 if data.completed else 0, _to_text(data.due_date), now, now),
            )
            row = self._fetch(conn, cur.lastrowid)
            if row is None:
                raise RuntimeError(f"todo {cur.lastrowid} missing right after insert")
            return self._row_to_entity(row)

    def get(self, todo_id: int) -> Optional[TodoEntity]:
        if not _in_range(todo_id):
            return None
        with self._conn() as conn:
            row = self._fetch(conn, todo_id)
            return self._row_to_entity(row) if row else None

    def update(self, todo_id: int, data: TodoCreate) -> Optional[TodoEntity]:
        if not _in_range(todo_id):
            return None
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.completed} = ?,
                    {_COLS.due_date} = ?, {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ?
                """,
                (
                    data.title,
                    data.description,
                    1 if data.completed else 0,
                    _to_text(data.due_date),
                    _to_text(datetime.now(timezone.utc)),
                    todo_id,
                ),
            )
            if cur.rowcount == 0:
                return None
            row = self._fetch(conn, todo_id)
            return self._row_to_entity(row) if row else None

    def delete(self, todo_id: int) -> bool:
        if not _in_range(todo_id):
            return False
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
            return cur.rowcount > 0

    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        q = query or ListQuery()
        clauses = []
        params: list = []

        if q.completed is not None:
            clauses.append(f"{_COLS.completed} = ?")
            params.append(1 if q.completed else 0)

        if q.search:
            # LIKE is case-insensitive for ASCII in SQLite
            clauses.append(f"({_COLS.title} LIKE ? ESCAPE '\\' OR {_COLS.description} LIKE ? ESCAPE '\\')")
            like = _like_pattern(q.search)
            params.extend([like, like])

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        # LIMIT -1 means no limit in SQLite
        limit = -1 if q.limit is None else max(q.limit, 0)
        offset = max(q.offset, 0)

        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0

            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                ORDER BY {_COLS.created_at} ASC, {_COLS.id} ASC
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows], total
