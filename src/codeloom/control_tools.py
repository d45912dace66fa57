"""Tools that talk to the user or end the agent's task."""

from __future__ import annotations

from pydantic import Field, field_validator

from codeloom.capability import Capability
from codeloom.context import ToolContext
from codeloom.tools import Tool, ToolArgs, ToolResult, tool

FINISH_TASK = "finish_task"


class AskUserArgs(ToolArgs):
    question: str = Field(description="The question to ask the user")
    options: list[str] | None = Field(
        None, description="Optional choices, as a list or a comma-separated string",
    )

    @field_validator("options", mode="before")
    @classmethod
    def split_options(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            value = [str(v).strip() for v in value if str(v).strip()]
            return value or None
        return value


class FinishTaskArgs(ToolArgs):
    summary: str = Field(description="What was accomplished")


@tool(AskUserArgs)
async def ask_user(ctx: ToolContext, args: AskUserArgs) -> ToolResult:
    """Ask the user a clarifying question and wait for the answer."""
    if ctx.callback is None:
        text = args.question
        if args.options:
            text += "\nOptions: " + ", ".join(args.options)
        return ToolResult.ok(text)

    answer = await ctx.callback.ask_user(args.question, args.options)
    if answer is None:
        return ToolResult.ok("No response from user")
    return ToolResult.ok(f"User response: {answer}")


@tool(FinishTaskArgs, name=FINISH_TASK)
async def finish_task(ctx: ToolContext, args: FinishTaskArgs) -> ToolResult:
    """Mark the task as complete. Call this once all work is done."""
    if ctx.callback is not None:
        await ctx.callback.on_task_finished(args.summary)
    return ToolResult.ok(f"Task completed: {args.summary}")


class ControlTools(Capability):
    def __init__(self):
        super().__init__("control")

    def tools(self) -> list[Tool]:
        return [ask_user, finish_task]
