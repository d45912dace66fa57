"""Per-project key/value memory for the agent.

Memories persist across sessions and are opaque strings.  Two stores are
provided: an in-process one and one that keeps a JSON document per
project on disk.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class MemoryStorage(Protocol):
    async def save(self, project_id: str, key: str, value: str) -> None: ...

    async def recall(self, project_id: str, key: str) -> str | None: ...

    async def list(self, project_id: str) -> dict[str, str]: ...

    async def delete(self, project_id: str, key: str) -> bool: ...


class MemoryEntry(BaseModel):
    key: str
    value: str
    timestamp: float = Field(default_factory=time.time)


class ProjectMemories(BaseModel):
    project_id: str
    entries: dict[str, MemoryEntry] = Field(default_factory=dict)


class InMemoryMemoryStorage:
    def __init__(self) -> None:
        self._projects: dict[str, ProjectMemories] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _memories(self, project_id: str) -> ProjectMemories:
        if project_id not in self._projects:
            self._projects[project_id] = ProjectMemories(project_id=project_id)
        return self._projects[project_id]

    async def save(self, project_id: str, key: str, value: str) -> None:
        async with self._locks[project_id]:
            self._memories(project_id).entries[key] = MemoryEntry(
                key=key, value=value,
            )

    async def recall(self, project_id: str, key: str) -> str | None:
        async with self._locks[project_id]:
            entry = self._memories(project_id).entries.get(key)
            return entry.value if entry else None

    async def list(self, project_id: str) -> dict[str, str]:
        async with self._locks[project_id]:
            return {
                k: e.value
                for k, e in self._memories(project_id).entries.items()
            }

    async def delete(self, project_id: str, key: str) -> bool:
        async with self._locks[project_id]:
            return self._memories(project_id).entries.pop(key, None) is not None

    async def clear_project(self, project_id: str) -> None:
        async with self._locks[project_id]:
            self._projects.pop(project_id, None)


class JsonFileMemoryStorage:
    """Stores each project's memories in ``<directory>/<project_id>.json``.

    A corrupt file reads as an empty memory set and is rewritten on the
    next save.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _path(self, project_id: str) -> Path:
        return self.directory / f"{project_id}.json"

    def _load(self, project_id: str) -> ProjectMemories:
        path = self._path(project_id)
        if not path.exists():
            return ProjectMemories(project_id=project_id)
        try:
            return ProjectMemories.model_validate_json(
                path.read_text(encoding="utf-8")
            )
        except (ValidationError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable memory file {path}: {e}")
            return ProjectMemories(project_id=project_id)

    def _store(self, memories: ProjectMemories) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(memories.project_id).write_text(
            memories.model_dump_json(indent=2), encoding="utf-8",
        )

    async def save(self, project_id: str, key: str, value: str) -> None:
        async with self._locks[project_id]:
            memories = await asyncio.to_thread(self._load, project_id)
            memories.entries[key] = MemoryEntry(key=key, value=value)
            await asyncio.to_thread(self._store, memories)

    async def recall(self, project_id: str, key: str) -> str | None:
        async with self._locks[project_id]:
            memories = await asyncio.to_thread(self._load, project_id)
            entry = memories.entries.get(key)
            return entry.value if entry else None

    async def list(self, project_id: str) -> dict[str, str]:
        async with self._locks[project_id]:
            memories = await asyncio.to_thread(self._load, project_id)
            return {k: e.value for k, e in memories.entries.items()}

    async def delete(self, project_id: str, key: str) -> bool:
        async with self._locks[project_id]:
            memories = await asyncio.to_thread(self._load, project_id)
            removed = memories.entries.pop(key, None) is not None
            if removed:
                await asyncio.to_thread(self._store, memories)
            return removed

    async def clear_project(self, project_id: str) -> None:
        async with self._locks[project_id]:
            self._path(project_id).unlink(missing_ok=True)


async def memory_context(storage: MemoryStorage, project_id: str) -> str:
    """Render saved memories as a system-prompt section ("" when none)."""
    memories = await storage.list(project_id)
    if not memories:
        return ""
    lines = [
        "## Project Memories",
        "Previously learned information about this project:",
    ]
    lines.extend(f"- **{key}**: {value}" for key, value in memories.items())
    return "\n".join(lines)
