from __future__ import annotations

from pydantic import Field

from codeloom.capability import Capability
from codeloom.context import ToolContext
from codeloom.todos import TodoItem, TodoNotFound, TodoStatus
from codeloom.tools import NoArgs, Tool, ToolArgs, ToolResult, tool

_STATUS_GLYPHS = {
    TodoStatus.PENDING: "[ ]",
    TodoStatus.IN_PROGRESS: "[~]",
    TodoStatus.COMPLETED: "[x]",
}


class CreateTodoArgs(ToolArgs):
    title: str = Field(description="Short title of the task")
    description: str = Field("", description="Optional details")


class UpdateTodoArgs(ToolArgs):
    todo_id: str = Field(description="Id returned by create_todo")
    status: str = Field(description="One of: pending, in_progress, completed")


def format_todo(item: TodoItem) -> str:
    row = f"{_STATUS_GLYPHS[item.status]} {item.title} (id: {item.id})"
    if item.description:
        row += f"\n    {item.description}"
    return row


@tool(CreateTodoArgs)
async def create_todo(ctx: ToolContext, args: CreateTodoArgs) -> ToolResult:
    """Add a task to the session's todo list to track multi-step work."""
    item = await ctx.todos.create(ctx.project_id, args.title, args.description)
    if ctx.callback is not None:
        await ctx.callback.on_todo_created(item)
    return ToolResult.ok(f"Todo created: {item.title} (id: {item.id})")


@tool(UpdateTodoArgs)
async def update_todo(ctx: ToolContext, args: UpdateTodoArgs) -> ToolResult:
    """Change the status of a todo item."""
    status = TodoStatus.parse(args.status)
    if status is None:
        valid = ", ".join(s.value for s in TodoStatus)
        return ToolResult.fail(
            f"Invalid status: {args.status}. Expected one of: {valid}"
        )
    try:
        item = await ctx.todos.update_status(ctx.project_id, args.todo_id, status)
    except TodoNotFound:
        return ToolResult.fail(f"Todo not found: {args.todo_id}")
    if ctx.callback is not None:
        await ctx.callback.on_todo_updated(item)
    return ToolResult.ok(f"Todo '{item.title}' is now {item.status.value}")


@tool(NoArgs)
async def list_todos(ctx: ToolContext, args: NoArgs) -> ToolResult:
    """Show the session's todo list."""
    items = await ctx.todos.list(ctx.project_id)
    if not items:
        return ToolResult.ok("No todos yet")
    return ToolResult.ok("\n".join(format_todo(item) for item in items))


class TodoTools(Capability):
    def __init__(self):
        super().__init__("todos")

    def tools(self) -> list[Tool]:
        return [create_todo, update_todo, list_todos]
