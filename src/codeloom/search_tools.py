"""Project-wide search, search-and-replace and exact-match patching."""

from __future__ import annotations

import logging

from pydantic import Field

from codeloom.capability import Capability
from codeloom.context import ToolContext
from codeloom.interaction import FileChangeType
from codeloom.matching import diff_stats, format_line_diff, line_diff, matches_glob
from codeloom.repository import iter_files
from codeloom.tools import Tool, ToolArgs, ToolResult, tool

logger = logging.getLogger(__name__)


class SearchFilesArgs(ToolArgs):
    query: str = Field(description="Text to search for (case-insensitive)")
    file_pattern: str | None = Field(
        None, description="Optional glob restricting which files are searched, e.g. '*.css'",
    )


class SearchReplaceArgs(ToolArgs):
    search: str = Field(description="Exact text to find")
    replace: str = Field(description="Replacement text")
    file_pattern: str | None = Field(None, description="Optional glob restricting the files")
    dry_run: bool = Field(False, description="Only report what would change")


class PatchFileArgs(ToolArgs):
    path: str = Field(description="Path of the file to patch")
    old_content: str = Field(description="Exact existing text to replace")
    new_content: str = Field(description="Text to put in its place")


@tool(SearchFilesArgs)
async def search_files(ctx: ToolContext, args: SearchFilesArgs) -> ToolResult:
    """Search for text across the project's files. Returns path:line: text rows."""
    tree = await ctx.repository.get_file_tree(ctx.project_id)
    if not tree.ok:
        return ToolResult.fail(f"Search failed: {tree.error}")

    needle = args.query.lower()
    rows = []
    for node in iter_files(tree.value):
        if args.file_pattern and not matches_glob(node.path, args.file_pattern):
            continue
        content = await ctx.read_existing(node.path)
        if content is None:
            continue
        for number, line in enumerate(content.splitlines(), start=1):
            if needle in line.lower():
                rows.append(f"{node.path}:{number}: {line.strip()}")

    if not rows:
        return ToolResult.ok(f"No matches found for: {args.query}")
    return ToolResult.ok("\n".join(rows))


@tool(SearchReplaceArgs)
async def search_replace(ctx: ToolContext, args: SearchReplaceArgs) -> ToolResult:
    """Replace text across multiple files. Use dry_run to preview the changes first."""
    # A dry run tells us which files change so their "before" content can be kept.
    preview = await ctx.repository.search_and_replace(
        ctx.project_id, args.search, args.replace, args.file_pattern, dry_run=True,
    )
    if not preview.ok:
        return ToolResult.fail(f"Search and replace failed: {preview.error}")

    if preview.value.total_replacements == 0:
        return ToolResult.ok(f"No occurrences of '{args.search}' found")

    lines = [
        f"  {entry.path}: {entry.replacements} replacement(s)"
        for entry in preview.value.files
    ]
    if args.dry_run:
        return ToolResult.ok("\n".join([
            f"Dry run: {preview.value.total_replacements} replacement(s) "
            f"in {preview.value.files_modified} file(s)",
            *lines,
        ]))

    before = {}
    for entry in preview.value.files:
        before[entry.path] = await ctx.read_existing(entry.path)

    result = await ctx.repository.search_and_replace(
        ctx.project_id, args.search, args.replace, args.file_pattern,
    )
    if not result.ok:
        return ToolResult.fail(f"Search and replace failed: {result.error}")

    for entry in result.value.files:
        after = await ctx.read_existing(entry.path)
        await ctx.file_changed(
            entry.path, FileChangeType.MODIFIED, before.get(entry.path), after,
        )
    logger.info(
        f"Replaced {result.value.total_replacements} occurrence(s) "
        f"in {result.value.files_modified} file(s)"
    )
    return ToolResult.ok("\n".join([
        f"Replaced {result.value.total_replacements} occurrence(s) "
        f"in {result.value.files_modified} file(s)",
        *[
            f"  {entry.path}: {entry.replacements} replacement(s)"
            for entry in result.value.files
        ],
    ]))


@tool(PatchFileArgs)
async def patch_file(ctx: ToolContext, args: PatchFileArgs) -> ToolResult:
    """Replace an exact snippet inside a file. Preferred over rewriting whole files for small changes."""
    read = await ctx.repository.read_file(ctx.project_id, args.path)
    if not read.ok:
        return ToolResult.fail(f"Failed to read file: {read.error}")
    before = read.value

    patched = await ctx.repository.patch_file(
        ctx.project_id, args.path, args.old_content, args.new_content,
    )
    if not patched.ok:
        return ToolResult.fail(f"Failed to patch file: {patched.error}")

    after = await ctx.read_existing(args.path)
    if after is None:
        after = before.replace(args.old_content, args.new_content)
    await ctx.file_changed(args.path, FileChangeType.MODIFIED, before, after)

    differences, total = line_diff(before, after)
    return ToolResult.ok(
        f"File patched: {args.path} {diff_stats(before, after)}\n"
        + format_line_diff(differences, total)
    )


class SearchTools(Capability):
    def __init__(self):
        super().__init__("search")

    def tools(self) -> list[Tool]:
        return [search_files, search_replace, patch_file]
