"""Hooks through which tools reach the user interface."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from codeloom.todos import TodoItem


class FileChangeType(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    MOVED = "moved"


@dataclass
class FileChangeEvent:
    """A file mutation performed by a tool.

    Emitted as a side effect and never stored by the engine.  For
    renames, copies and moves ``path`` is the destination and
    ``source_path`` the origin.
    """

    path: str
    change_type: FileChangeType
    old_content: str | None = None
    new_content: str | None = None
    source_path: str | None = None


class ToolInteractionCallback:
    """Receives questions and side-effect notifications from tools.

    Every hook is a no-op by default; override the ones your interface
    needs.  The engine consumes but does not own the callback.
    """

    async def ask_user(
        self, question: str, options: list[str] | None = None,
    ) -> str | None:
        """Block until the user answers.  ``None`` means no answer."""
        return None

    async def on_file_changed(self, event: FileChangeEvent) -> None:
        pass

    async def on_todo_created(self, todo: TodoItem) -> None:
        pass

    async def on_todo_updated(self, todo: TodoItem) -> None:
        pass

    async def on_task_finished(self, summary: str) -> None:
        pass
