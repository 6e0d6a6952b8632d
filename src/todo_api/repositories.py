from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import List, Optional, Tuple

from .models import TodoEntity
from .schemas import TodoCreate

# Largest id a SQLite INTEGER PRIMARY KEY can hold
MAX_TODO_ID = 2**63 - 1


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing todos. limit=None returns every match.
    """
    limit: Optional[int] = None
    offset: int = 0
    completed: Optional[bool] = None
    search: Optional[str] = None


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for todo storage backends."""

    @abstractmethod
    def create(self, data: TodoCreate) -> TodoEntity:
        """Create and return a new TodoEntity."""

    @abstractmethod
    def get(self, todo_id: int) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def update(self, todo_id: int, data: TodoCreate) -> Optional[TodoEntity]:
        """Replace title, description, completed and due_date. Return None if not found."""

    @abstractmethod
    def delete(self, todo_id: int) -> bool:
        """Delete a TodoEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        """
        Return a slice of TodoEntities and total count matching filters.
        - Ordered by created_at, then id
        - Supports limit/offset
        - Filter by completed
        - Substring search across title and description (case-insensitive)
        """


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[int, TodoEntity] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def create(self, data: TodoCreate) -> TodoEntity:
        now = self._now()
        with self._lock:
            entity: TodoEntity = {
                "id": self._next_id,
                "title": data.title,
                "description": data.description,
                "completed": data.completed,
                "due_date": data.due_date,
                "created_at": now,
                "updated_at": now,
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()

    def get(self, todo_id: int) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def update(self, todo_id: int, data: TodoCreate) -> Optional[TodoEntity]:
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return None

            updated = existing.copy()
            updated["title"] = data.title
            updated["description"] = data.description
            updated["completed"] = data.completed
            updated["due_date"] = data.due_date
            updated["updated_at"] = self._now()

            self._items[todo_id] = updated
            return updated.copy()

    def delete(self, todo_id: int) -> bool:
        with self._lock:
            return self._items.pop(todo_id, None) is not None

    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        q = query or ListQuery()
        with self._lock:
            items = list(self._items.values())

            if q.completed is not None:
                items = [t for t in items if t["completed"] == q.completed]

            if q.search:
                s = q.search.lower()
                items = [
                    t for t in items
                    if s in t["title"].lower() or s in (t["description"] or "").lower()
                ]

            total = len(items)
            items.sort(key=lambda t: (t["created_at"], t["id"]))

            start = max(q.offset, 0)
            page = items[start:] if q.limit is None else items[start:start + max(q.limit, 0)]

            # Return copies to avoid external mutation
            return [t.copy() for t in page], total
