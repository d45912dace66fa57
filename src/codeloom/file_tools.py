"""File operations on the project sandbox.

Mutating handlers read the "before" content first, run the repository
operation and then report a :class:`~codeloom.interaction.FileChangeEvent`
so the interface can render a diff.
"""

from __future__ import annotations

import logging
from collections import Counter

from pydantic import Field

from codeloom.capability import Capability
from codeloom.context import ToolContext
from codeloom.interaction import FileChangeType
from codeloom.matching import diff_stats, format_line_diff, line_diff, matches_glob
from codeloom.repository import (
    FileNode,
    FileTreeNode,
    FolderNode,
    find_node,
    iter_files,
    iter_folders,
)
from codeloom.tools import NoArgs, Tool, ToolArgs, ToolResult, tool

logger = logging.getLogger(__name__)

FOLDER_GLYPH = "📁"
FILE_GLYPH = "📄"


# ---------------------------------------------------------------------------
# Argument records
# ---------------------------------------------------------------------------

class PathArgs(ToolArgs):
    path: str = Field(description="Path relative to the project root, e.g. 'css/styles.css'")


class WriteFileArgs(ToolArgs):
    path: str = Field(description="Path relative to the project root")
    content: str = Field(description="The full content to write to the file")


class ListFilesArgs(ToolArgs):
    path: str = Field("", description="Directory to list; '' or '.' for the root")


class RenameFileArgs(ToolArgs):
    old_path: str = Field(description="The current path of the file")
    new_path: str = Field(description="The new path for the file")


class TransferArgs(ToolArgs):
    source_path: str = Field(description="The path of the file to copy or move")
    destination_path: str = Field(description="Where the file should end up")


class InsertAtLineArgs(ToolArgs):
    path: str = Field(description="Path of the file to edit")
    line_number: int = Field(ge=0, description="Insert after this line; 0 inserts at the top")
    content: str = Field(description="Text to insert")


class AppendArgs(ToolArgs):
    path: str = Field(description="Path of the file to append to")
    content: str = Field(description="Text to append")


class FindFilesArgs(ToolArgs):
    pattern: str = Field(description="Glob pattern such as '*.js' or 'src/**/*.css'")
    path: str = Field("", description="Only search below this folder")


class ReadLinesArgs(ToolArgs):
    path: str = Field(description="Path of the file to read")
    start_line: int = Field(ge=1, description="First line to read (1-based)")
    end_line: int | None = Field(None, ge=1, description="Last line to read, inclusive")


class DiffFilesArgs(ToolArgs):
    path1: str = Field(description="First file")
    path2: str = Field(description="Second file")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_root(path: str) -> bool:
    return path.strip().strip("/") in ("", ".")


def render_tree(nodes: list[FileTreeNode], indent: str = "") -> list[str]:
    rows = []
    for node in nodes:
        if isinstance(node, FolderNode):
            rows.append(f"{indent}{FOLDER_GLYPH} {node.name}/")
            rows.extend(render_tree(node.children, indent + "  "))
        else:
            rows.append(f"{indent}{FILE_GLYPH} {node.name}")
    return rows


async def _tree(ctx: ToolContext):
    return await ctx.repository.get_file_tree(ctx.project_id)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

@tool(PathArgs)
async def read_file(ctx: ToolContext, args: PathArgs) -> ToolResult:
    """Read the contents of a file. Use this to view existing code before making changes."""
    result = await ctx.repository.read_file(ctx.project_id, args.path)
    if not result.ok:
        return ToolResult.fail(f"Failed to read file: {result.error}")
    return ToolResult.ok(result.value)


@tool(WriteFileArgs)
async def write_file(ctx: ToolContext, args: WriteFileArgs) -> ToolResult:
    """Write content to a file, creating it if it doesn't exist or overwriting it if it does."""
    before = await ctx.read_existing(args.path)
    stats = diff_stats(before, args.content)

    if before is None:
        created = await ctx.repository.create_file(
            ctx.project_id, args.path, args.content,
        )
        if created.ok:
            await ctx.file_changed(
                args.path, FileChangeType.CREATED, None, args.content,
            )
            return ToolResult.ok(f"File created: {args.path} {stats}")
        logger.info(
            f"create_file failed for {args.path} ({created.error}); "
            "falling back to write_file"
        )

    written = await ctx.repository.write_file(
        ctx.project_id, args.path, args.content,
    )
    if not written.ok:
        return ToolResult.fail(f"Failed to write file: {written.error}")

    change = FileChangeType.CREATED if before is None else FileChangeType.MODIFIED
    await ctx.file_changed(args.path, change, before, args.content)
    verb = "created" if before is None else "updated"
    return ToolResult.ok(f"File {verb}: {args.path} {stats}")


@tool(ListFilesArgs)
async def list_files(ctx: ToolContext, args: ListFilesArgs) -> ToolResult:
    """List the files and folders in a directory. Use this to explore the project structure."""
    tree = await _tree(ctx)
    if not tree.ok:
        return ToolResult.fail(f"Failed to list files: {tree.error}")

    nodes = tree.value
    if not _is_root(args.path):
        node = find_node(nodes, args.path)
        if node is None:
            return ToolResult.fail(f"Directory not found: {args.path}")
        if not isinstance(node, FolderNode):
            return ToolResult.fail(f"Not a directory: {args.path}")
        nodes = node.children

    rows = render_tree(nodes)
    return ToolResult.ok("\n".join(rows) if rows else "Directory is empty")


@tool(PathArgs)
async def delete_file(ctx: ToolContext, args: PathArgs) -> ToolResult:
    """Delete a file or folder from the project. Use with caution."""
    before = await ctx.read_existing(args.path)
    result = await ctx.repository.delete_file(ctx.project_id, args.path)
    if not result.ok:
        return ToolResult.fail(f"Failed to delete file: {result.error}")
    await ctx.file_changed(args.path, FileChangeType.DELETED, before, None)
    return ToolResult.ok(f"File deleted successfully: {args.path}")


@tool(PathArgs)
async def create_folder(ctx: ToolContext, args: PathArgs) -> ToolResult:
    """Create a new folder in the project."""
    result = await ctx.repository.create_folder(ctx.project_id, args.path)
    if not result.ok:
        return ToolResult.fail(f"Failed to create folder: {result.error}")
    await ctx.file_changed(args.path, FileChangeType.CREATED)
    return ToolResult.ok(f"Folder created successfully: {args.path}")


@tool(RenameFileArgs)
async def rename_file(ctx: ToolContext, args: RenameFileArgs) -> ToolResult:
    """Rename a file or give it a new location."""
    content = await ctx.read_existing(args.old_path)
    result = await ctx.repository.rename_file(
        ctx.project_id, args.old_path, args.new_path,
    )
    if not result.ok:
        return ToolResult.fail(f"Failed to rename file: {result.error}")
    await ctx.file_changed(
        args.new_path, FileChangeType.RENAMED,
        new_content=content, source_path=args.old_path,
    )
    return ToolResult.ok(
        f"File renamed from '{args.old_path}' to '{args.new_path}'"
    )


@tool(TransferArgs)
async def copy_file(ctx: ToolContext, args: TransferArgs) -> ToolResult:
    """Copy a file to a new location."""
    content = await ctx.read_existing(args.source_path)
    result = await ctx.repository.copy_file(
        ctx.project_id, args.source_path, args.destination_path,
    )
    if not result.ok:
        return ToolResult.fail(f"Failed to copy file: {result.error}")
    await ctx.file_changed(
        args.destination_path, FileChangeType.COPIED,
        new_content=content, source_path=args.source_path,
    )
    return ToolResult.ok(
        f"File copied from '{args.source_path}' to '{args.destination_path}'"
    )


@tool(TransferArgs)
async def move_file(ctx: ToolContext, args: TransferArgs) -> ToolResult:
    """Move a file to a new location."""
    content = await ctx.read_existing(args.source_path)
    result = await ctx.repository.move_file(
        ctx.project_id, args.source_path, args.destination_path,
    )
    if not result.ok:
        return ToolResult.fail(f"Failed to move file: {result.error}")
    await ctx.file_changed(
        args.destination_path, FileChangeType.MOVED,
        new_content=content, source_path=args.source_path,
    )
    return ToolResult.ok(
        f"File moved from '{args.source_path}' to '{args.destination_path}'"
    )


@tool(PathArgs)
async def get_file_info(ctx: ToolContext, args: PathArgs) -> ToolResult:
    """Show type, size and line count for a file or folder."""
    tree = await _tree(ctx)
    if not tree.ok:
        return ToolResult.fail(f"Failed to get file info: {tree.error}")
    node = find_node(tree.value, args.path)
    if node is None:
        return ToolResult.fail(f"File not found: {args.path}")

    if isinstance(node, FolderNode):
        files = sum(1 for _ in iter_files(node.children))
        folders = sum(1 for _ in iter_folders(node.children))
        return ToolResult.ok("\n".join([
            f"Path: {node.path}",
            "Type: folder",
            f"Files: {files}",
            f"Folders: {folders}",
        ]))

    rows = [
        f"Path: {node.path}",
        "Type: file",
        f"Size: {node.size} bytes",
        f"Extension: {node.extension or '(none)'}",
    ]
    content = await ctx.read_existing(node.path)
    if content is not None:
        rows.append(f"Lines: {len(content.splitlines())}")
    return ToolResult.ok("\n".join(rows))


@tool(InsertAtLineArgs)
async def insert_at_line(ctx: ToolContext, args: InsertAtLineArgs) -> ToolResult:
    """Insert text after a given line of a file (0 inserts at the top)."""
    read = await ctx.repository.read_file(ctx.project_id, args.path)
    if not read.ok:
        return ToolResult.fail(f"Failed to read file: {read.error}")
    before = read.value

    lines = before.splitlines(keepends=True)
    position = min(args.line_number, len(lines))
    insertion = args.content if args.content.endswith("\n") else args.content + "\n"
    if position == len(lines) and lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    lines.insert(position, insertion)
    after = "".join(lines)

    written = await ctx.repository.write_file(ctx.project_id, args.path, after)
    if not written.ok:
        return ToolResult.fail(f"Failed to write file: {written.error}")
    await ctx.file_changed(args.path, FileChangeType.MODIFIED, before, after)
    return ToolResult.ok(
        f"Inserted content after line {position} in {args.path} "
        f"{diff_stats(before, after)}"
    )


@tool(AppendArgs)
async def append_to_file(ctx: ToolContext, args: AppendArgs) -> ToolResult:
    """Append text to the end of a file, creating the file if needed."""
    before = await ctx.read_existing(args.path)
    if before is None:
        created = await ctx.repository.create_file(
            ctx.project_id, args.path, args.content,
        )
        if not created.ok:
            return ToolResult.fail(f"Failed to create file: {created.error}")
        await ctx.file_changed(
            args.path, FileChangeType.CREATED, None, args.content,
        )
        return ToolResult.ok(
            f"File created: {args.path} {diff_stats(None, args.content)}"
        )

    separator = "\n" if before and not before.endswith("\n") else ""
    after = before + separator + args.content
    written = await ctx.repository.write_file(ctx.project_id, args.path, after)
    if not written.ok:
        return ToolResult.fail(f"Failed to write file: {written.error}")
    await ctx.file_changed(args.path, FileChangeType.MODIFIED, before, after)
    return ToolResult.ok(
        f"Appended to {args.path} {diff_stats(before, after)}"
    )


@tool(FindFilesArgs)
async def find_files(ctx: ToolContext, args: FindFilesArgs) -> ToolResult:
    """Find files whose name or path matches a glob pattern."""
    tree = await _tree(ctx)
    if not tree.ok:
        return ToolResult.fail(f"Failed to find files: {tree.error}")

    prefix = "" if _is_root(args.path) else args.path.strip("/") + "/"
    matches = [
        node.path
        for node in iter_files(tree.value)
        if node.path.startswith(prefix) and matches_glob(node.path, args.pattern)
    ]
    if not matches:
        return ToolResult.ok(f"No files matching: {args.pattern}")
    return ToolResult.ok("\n".join(sorted(matches)))


@tool(ReadLinesArgs)
async def read_lines(ctx: ToolContext, args: ReadLinesArgs) -> ToolResult:
    """Read a range of lines from a file, with line numbers."""
    read = await ctx.repository.read_file(ctx.project_id, args.path)
    if not read.ok:
        return ToolResult.fail(f"Failed to read file: {read.error}")

    lines = read.value.splitlines()
    total = len(lines)
    if args.start_line > total:
        return ToolResult.fail(
            f"start_line {args.start_line} is beyond the end of "
            f"{args.path} ({total} lines)"
        )
    end = min(args.end_line or total, total)
    if end < args.start_line:
        return ToolResult.fail("end_line must not be before start_line")

    rows = [
        f"{number}: {lines[number - 1]}"
        for number in range(args.start_line, end + 1)
    ]
    return ToolResult.ok("\n".join(rows))


@tool(DiffFilesArgs)
async def diff_files(ctx: ToolContext, args: DiffFilesArgs) -> ToolResult:
    """Compare two files line by line."""
    first = await ctx.repository.read_file(ctx.project_id, args.path1)
    if not first.ok:
        return ToolResult.fail(f"Failed to read file: {first.error}")
    second = await ctx.repository.read_file(ctx.project_id, args.path2)
    if not second.ok:
        return ToolResult.fail(f"Failed to read file: {second.error}")

    differences, total = line_diff(first.value, second.value)
    header = (
        f"Comparing {args.path1} and {args.path2}: {total} differing "
        f"line(s) {diff_stats(first.value, second.value)}"
    )
    return ToolResult.ok(header + "\n" + format_line_diff(differences, total))


@tool(NoArgs)
async def get_project_summary(ctx: ToolContext, args: NoArgs) -> ToolResult:
    """Summarize the project: file counts, sizes, file types and top-level layout."""
    tree = await _tree(ctx)
    if not tree.ok:
        return ToolResult.fail(f"Failed to summarize project: {tree.error}")

    files: list[FileNode] = list(iter_files(tree.value))
    folders = sum(1 for _ in iter_folders(tree.value))
    types = Counter(node.extension or "(none)" for node in files)

    rows = [
        "Project summary",
        f"Files: {len(files)}",
        f"Folders: {folders}",
        f"Total size: {sum(node.size for node in files)} bytes",
    ]
    if types:
        rows.append("File types:")
        rows.extend(f"  {ext}: {count}" for ext, count in types.most_common())
    top_level = [
        f"  {FOLDER_GLYPH} {node.name}/" if isinstance(node, FolderNode)
        else f"  {FILE_GLYPH} {node.name}"
        for node in tree.value
    ]
    if top_level:
        rows.append("Top-level:")
        rows.extend(top_level)
    return ToolResult.ok("\n".join(rows))


class FileTools(Capability):
    def __init__(self):
        super().__init__("files")

    def tools(self) -> list[Tool]:
        return [
            read_file,
            write_file,
            list_files,
            delete_file,
            create_folder,
            rename_file,
            copy_file,
            move_file,
            get_file_info,
            insert_at_line,
            append_to_file,
            find_files,
            read_lines,
            diff_files,
            get_project_summary,
        ]
