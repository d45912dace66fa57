"""Session-scoped todo lists, one per project."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from enum import Enum

from pydantic import BaseModel, Field


class TodoStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str) -> "TodoStatus | None":
        normalized = raw.strip().lower().replace("-", "_").replace(" ", "_")
        for status in cls:
            if status.value == normalized:
                return status
        return None


class TodoItem(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str = ""
    status: TodoStatus = TodoStatus.PENDING


class TodoNotFound(LookupError):
    pass


class TodoStore:
    """Owns every project's todo list.

    Mutations for one project are serialized by that project's lock.
    Items are never deleted individually; :meth:`clear` drops a whole
    session's list, and with it the project's lock once no other call
    is waiting on it.  Any status transition is accepted.
    """

    def __init__(self) -> None:
        self._todos: dict[str, dict[str, TodoItem]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def _guard(self, project_id: str):
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._waiters[project_id] = self._waiters.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[project_id] -= 1
            if not self._waiters[project_id] and project_id not in self._todos:
                del self._waiters[project_id]
                del self._locks[project_id]

    async def create(
        self, project_id: str, title: str, description: str = "",
    ) -> TodoItem:
        async with self._guard(project_id):
            item = TodoItem(title=title, description=description)
            self._todos.setdefault(project_id, {})[item.id] = item
            return item.model_copy()

    async def update_status(
        self, project_id: str, todo_id: str, status: TodoStatus,
    ) -> TodoItem:
        async with self._guard(project_id):
            item = self._todos.get(project_id, {}).get(todo_id)
            if item is None:
                raise TodoNotFound(todo_id)
            item.status = status
            return item.model_copy()

    async def list(self, project_id: str) -> list[TodoItem]:
        async with self._guard(project_id):
            return [
                item.model_copy()
                for item in self._todos.get(project_id, {}).values()
            ]

    async def clear(self, project_id: str) -> None:
        async with self._guard(project_id):
            self._todos.pop(project_id, None)
