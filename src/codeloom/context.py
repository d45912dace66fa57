from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from codeloom.interaction import FileChangeEvent, FileChangeType

if TYPE_CHECKING:
    from codeloom.interaction import ToolInteractionCallback
    from codeloom.memory import MemoryStorage
    from codeloom.repository import ProjectRepository
    from codeloom.todos import TodoStore


@dataclass
class ToolContext:
    """Runtime context handed to every tool handler.

    The executor builds one per call so handlers never look up
    collaborators themselves.

    Args:
        project_id: Project the tool call operates on.
        repository: File-system collaborator for the project tree.
        memory: Key/value memory store.
        todos: Owner of the session todo lists.
        callback: User-interface hooks, or ``None`` when headless.
    """

    project_id: str
    repository: ProjectRepository
    memory: MemoryStorage
    todos: TodoStore
    callback: ToolInteractionCallback | None = None

    async def file_changed(
        self,
        path: str,
        change_type: FileChangeType,
        old_content: str | None = None,
        new_content: str | None = None,
        source_path: str | None = None,
    ) -> None:
        if self.callback is None:
            return
        await self.callback.on_file_changed(FileChangeEvent(
            path=path,
            change_type=change_type,
            old_content=old_content,
            new_content=new_content,
            source_path=source_path,
        ))

    async def read_existing(self, path: str) -> str | None:
        """Current content of *path*, or ``None`` if it cannot be read."""
        result = await self.repository.read_file(self.project_id, path)
        return result.value if result.ok else None
