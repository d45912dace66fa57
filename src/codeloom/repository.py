"""Project file-system collaborator.

Every :class:`ProjectRepository` operation returns a :class:`RepoResult`;
no exception crosses this boundary.  :class:`LocalProjectRepository`
implements the contract over one directory per project.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, Protocol, TypeVar, Union

from codeloom.matching import matches_glob

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RepoResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "RepoResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "RepoResult[T]":
        return cls(ok=False, error=error)


@dataclass
class FileNode:
    name: str
    path: str
    size: int = 0

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""


@dataclass
class FolderNode:
    name: str
    path: str
    children: list[FileTreeNode] = field(default_factory=list)


FileTreeNode = Union[FileNode, FolderNode]


def iter_files(nodes: list[FileTreeNode]):
    """Depth-first walk over the file nodes of a tree."""
    for node in nodes:
        if isinstance(node, FolderNode):
            yield from iter_files(node.children)
        else:
            yield node


def iter_folders(nodes: list[FileTreeNode]):
    for node in nodes:
        if isinstance(node, FolderNode):
            yield node
            yield from iter_folders(node.children)


def find_node(nodes: list[FileTreeNode], path: str) -> FileTreeNode | None:
    path = path.strip("/")
    for node in nodes:
        if node.path == path:
            return node
        if isinstance(node, FolderNode) and path.startswith(node.path + "/"):
            return find_node(node.children, path)
    return None


@dataclass
class SearchReplaceFileResult:
    path: str
    replacements: int


@dataclass
class SearchReplaceResult:
    files_modified: int = 0
    total_replacements: int = 0
    files: list[SearchReplaceFileResult] = field(default_factory=list)


class ProjectRepository(Protocol):
    async def read_file(self, project_id: str, path: str) -> RepoResult[str]: ...

    async def write_file(
        self, project_id: str, path: str, content: str,
    ) -> RepoResult[None]: ...

    async def create_file(
        self, project_id: str, path: str, content: str = "",
    ) -> RepoResult[None]: ...

    async def delete_file(self, project_id: str, path: str) -> RepoResult[None]: ...

    async def create_folder(self, project_id: str, path: str) -> RepoResult[None]: ...

    async def rename_file(
        self, project_id: str, old_path: str, new_path: str,
    ) -> RepoResult[None]: ...

    async def copy_file(
        self, project_id: str, source_path: str, destination_path: str,
    ) -> RepoResult[None]: ...

    async def move_file(
        self, project_id: str, source_path: str, destination_path: str,
    ) -> RepoResult[None]: ...

    async def get_file_tree(
        self, project_id: str,
    ) -> RepoResult[list[FileTreeNode]]: ...

    async def search_and_replace(
        self,
        project_id: str,
        search: str,
        replace: str,
        file_pattern: str | None = None,
        dry_run: bool = False,
    ) -> RepoResult[SearchReplaceResult]: ...

    async def patch_file(
        self, project_id: str, path: str, old_content: str, new_content: str,
    ) -> RepoResult[None]: ...


class LocalProjectRepository:
    """Serves each project from ``<base_dir>/<project_id>``.

    Paths are resolved relative to the project root and may not escape
    it.  Entries whose name starts with ``.`` are hidden from the tree
    and from search.  Blocking file calls run in a worker thread.
    """

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    def project_root(self, project_id: str) -> Path:
        return self.base_dir / project_id

    def _resolve(self, project_id: str, path: str) -> Path:
        root = self.project_root(project_id).resolve()
        if not root.is_dir():
            raise _RepoFailure(f"Project not found: {project_id}")
        target = (root / path.lstrip("/")).resolve()
        if target != root and root not in target.parents:
            raise _RepoFailure(f"Path escapes project root: {path}")
        return target

    async def _run(self, func, *args) -> RepoResult:
        try:
            value = await asyncio.to_thread(func, *args)
        except _RepoFailure as e:
            return RepoResult.failure(str(e))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Repository operation failed: {e}")
            return RepoResult.failure(str(e))
        return RepoResult.success(value)

    # -- reads -------------------------------------------------------------

    async def read_file(self, project_id: str, path: str) -> RepoResult[str]:
        def _read():
            target = self._resolve(project_id, path)
            if not target.is_file():
                raise _RepoFailure(f"File not found: {path}")
            return target.read_text(encoding="utf-8")
        return await self._run(_read)

    async def get_file_tree(
        self, project_id: str,
    ) -> RepoResult[list[FileTreeNode]]:
        def _tree():
            root = self._resolve(project_id, "")
            return _build_tree(root, root)
        return await self._run(_tree)

    # -- writes ------------------------------------------------------------

    async def write_file(
        self, project_id: str, path: str, content: str,
    ) -> RepoResult[None]:
        def _write():
            target = self._resolve(project_id, path)
            if target.is_dir():
                raise _RepoFailure(f"Path is a folder: {path}")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return await self._run(_write)

    async def create_file(
        self, project_id: str, path: str, content: str = "",
    ) -> RepoResult[None]:
        def _create():
            target = self._resolve(project_id, path)
            if target.exists():
                raise _RepoFailure(f"File already exists: {path}")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return await self._run(_create)

    async def create_folder(self, project_id: str, path: str) -> RepoResult[None]:
        def _mkdir():
            target = self._resolve(project_id, path)
            if target.exists():
                raise _RepoFailure(f"File already exists: {path}")
            target.mkdir(parents=True)
        return await self._run(_mkdir)

    async def delete_file(self, project_id: str, path: str) -> RepoResult[None]:
        def _delete():
            target = self._resolve(project_id, path)
            if target == self.project_root(project_id).resolve():
                raise _RepoFailure("Cannot delete the project root")
            if not target.exists():
                raise _RepoFailure(f"File not found: {path}")
            if target.is_dir():
                shutil.rmtree(target)
            else:
                target.unlink()
        return await self._run(_delete)

    async def rename_file(
        self, project_id: str, old_path: str, new_path: str,
    ) -> RepoResult[None]:
        def _rename():
            source, destination = self._pair(project_id, old_path, new_path)
            source.rename(destination)
        return await self._run(_rename)

    async def copy_file(
        self, project_id: str, source_path: str, destination_path: str,
    ) -> RepoResult[None]:
        def _copy():
            source, destination = self._pair(
                project_id, source_path, destination_path,
            )
            if source.is_dir():
                shutil.copytree(source, destination)
            else:
                shutil.copy2(source, destination)
        return await self._run(_copy)

    async def move_file(
        self, project_id: str, source_path: str, destination_path: str,
    ) -> RepoResult[None]:
        def _move():
            source, destination = self._pair(
                project_id, source_path, destination_path,
            )
            shutil.move(str(source), str(destination))
        return await self._run(_move)

    async def search_and_replace(
        self,
        project_id: str,
        search: str,
        replace: str,
        file_pattern: str | None = None,
        dry_run: bool = False,
    ) -> RepoResult[SearchReplaceResult]:
        def _search_replace():
            root = self._resolve(project_id, "")
            result = SearchReplaceResult()
            for node in iter_files(_build_tree(root, root)):
                if file_pattern and not matches_glob(node.path, file_pattern):
                    continue
                target = root / node.path
                try:
                    content = target.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError):
                    # binary or unreadable files are not searchable
                    continue
                occurrences = content.count(search)
                if occurrences == 0:
                    continue
                result.files_modified += 1
                result.total_replacements += occurrences
                result.files.append(
                    SearchReplaceFileResult(node.path, occurrences)
                )
                if not dry_run:
                    target.write_text(
                        content.replace(search, replace), encoding="utf-8",
                    )
            return result
        if not search:
            return RepoResult.failure("Search text must not be empty")
        return await self._run(_search_replace)

    async def patch_file(
        self, project_id: str, path: str, old_content: str, new_content: str,
    ) -> RepoResult[None]:
        def _patch():
            target = self._resolve(project_id, path)
            if not target.is_file():
                raise _RepoFailure(f"File not found: {path}")
            current = target.read_text(encoding="utf-8")
            if old_content not in current:
                raise _RepoFailure(f"Content to replace not found in {path}")
            target.write_text(
                current.replace(old_content, new_content), encoding="utf-8",
            )
        return await self._run(_patch)

    def _pair(self, project_id: str, source_path: str, destination_path: str):
        source = self._resolve(project_id, source_path)
        destination = self._resolve(project_id, destination_path)
        if not source.exists():
            raise _RepoFailure(f"File not found: {source_path}")
        if destination.exists():
            raise _RepoFailure(f"File already exists: {destination_path}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        return source, destination


class _RepoFailure(Exception):
    pass


def _build_tree(directory: Path, root: Path) -> list[FileTreeNode]:
    entries = [p for p in directory.iterdir() if not p.name.startswith(".")]
    entries.sort(key=lambda p: (not p.is_dir(), p.name.lower()))
    nodes: list[FileTreeNode] = []
    for entry in entries:
        relative = entry.relative_to(root).as_posix()
        if entry.is_dir():
            nodes.append(FolderNode(
                name=entry.name,
                path=relative,
                children=_build_tree(entry, root),
            ))
        else:
            nodes.append(FileNode(
                name=entry.name, path=relative, size=entry.stat().st_size,
            ))
    return nodes
