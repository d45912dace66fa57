from __future__ import annotations

import logging

from pydantic import Field

from codeloom.capability import Capability
from codeloom.context import ToolContext
from codeloom.tools import NoArgs, Tool, ToolArgs, ToolResult, tool

logger = logging.getLogger(__name__)


class KeyArgs(ToolArgs):
    key: str = Field(description="Memory key, e.g. 'css_framework'")


class KeyValueArgs(ToolArgs):
    key: str = Field(description="Memory key")
    value: str = Field(description="Information to remember")


@tool(KeyValueArgs)
async def save_memory(ctx: ToolContext, args: KeyValueArgs) -> ToolResult:
    """Save a piece of information about the project to remember across sessions."""
    await ctx.memory.save(ctx.project_id, args.key, args.value)
    return ToolResult.ok(f"Memory saved: {args.key}")


@tool(KeyArgs)
async def recall_memory(ctx: ToolContext, args: KeyArgs) -> ToolResult:
    """Recall a previously saved piece of project information."""
    value = await ctx.memory.recall(ctx.project_id, args.key)
    if value is None:
        return ToolResult.ok(f"No memory found for key: {args.key}")
    return ToolResult.ok(value)


@tool(NoArgs)
async def list_memories(ctx: ToolContext, args: NoArgs) -> ToolResult:
    """List every memory saved for this project."""
    memories = await ctx.memory.list(ctx.project_id)
    if not memories:
        return ToolResult.ok("No memories saved for this project")
    return ToolResult.ok(
        "\n".join(f"• {key}: {value}" for key, value in memories.items())
    )


@tool(KeyArgs)
async def delete_memory(ctx: ToolContext, args: KeyArgs) -> ToolResult:
    """Delete a saved memory."""
    if not await ctx.memory.delete(ctx.project_id, args.key):
        return ToolResult.fail(f"No memory found for key: {args.key}")
    return ToolResult.ok(f"Memory deleted: {args.key}")


@tool(KeyValueArgs)
async def update_memory(ctx: ToolContext, args: KeyValueArgs) -> ToolResult:
    """Overwrite the value of a memory, creating it if it does not exist yet."""
    existed = await ctx.memory.recall(ctx.project_id, args.key) is not None
    await ctx.memory.save(ctx.project_id, args.key, args.value)
    if not existed:
        logger.info(f"update_memory created new key {args.key}")
        return ToolResult.ok(f"Memory created (no previous value): {args.key}")
    return ToolResult.ok(f"Memory updated: {args.key}")


class MemoryTools(Capability):
    def __init__(self):
        super().__init__("memory")

    def tools(self) -> list[Tool]:
        return [save_memory, recall_memory, list_memories, delete_memory, update_memory]
