from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from codeloom.errors import (
    InvalidArgumentError,
    MissingArgumentError,
    ToolRegistrationError,
)

if TYPE_CHECKING:
    from codeloom.context import ToolContext

_TOOL_NAME = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


class ToolResult(BaseModel):
    """The single return value of every tool handler."""

    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str) -> "ToolResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str, output: str = "") -> "ToolResult":
        return cls(success=False, output=output, error=error)

    def as_model_content(self) -> str:
        """Text sent back to the model as the tool message."""
        if self.success:
            return self.output
        return f"Error: {self.error or 'tool failed'}"


class ToolArgs(BaseModel):
    """Base for per-tool argument records.

    Numbers are accepted where strings are declared, unknown keys are
    ignored.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class NoArgs(ToolArgs):
    pass


Handler = Callable[["ToolContext", Any], Awaitable[ToolResult]]


def _strip_titles(schema: Any) -> Any:
    if isinstance(schema, dict):
        cleaned = {}
        for key, value in schema.items():
            if key == "title" and isinstance(value, str):
                continue
            if key == "properties" and isinstance(value, dict):
                cleaned[key] = {n: _strip_titles(p) for n, p in value.items()}
            else:
                cleaned[key] = _strip_titles(value)
        return cleaned
    if isinstance(schema, list):
        return [_strip_titles(item) for item in schema]
    return schema


@dataclass
class Tool:
    """A named tool: a typed argument record plus an async handler."""

    name: str
    description: str
    args_model: type[ToolArgs]
    handler: Handler
    _schema: dict | None = field(default=None, init=False, repr=False)

    def parameters_schema(self) -> dict:
        schema = _strip_titles(self.args_model.model_json_schema())
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def model_dump(self) -> dict:
        """OpenAI-compatible function schema, built once."""
        if self._schema is None:
            self._schema = {
                "type": "function",
                "function": {
                    "name": self.name,
                    "description": self.description,
                    "parameters": self.parameters_schema(),
                },
            }
        return self._schema

    def parse_arguments(self, raw: dict[str, Any]) -> ToolArgs:
        """Validate raw JSON arguments into the tool's record.

        JSON ``null`` counts as absent.  A missing required field wins
        over other problems so callers see the uniform missing-argument
        message.
        """
        present = {k: v for k, v in raw.items() if v is not None}
        try:
            return self.args_model.model_validate(present)
        except ValidationError as e:
            errors = e.errors()
            for err in errors:
                if err["type"] == "missing":
                    raise MissingArgumentError(_location(err)) from None
            first = errors[0]
            raise InvalidArgumentError(_location(first), first["msg"]) from None

    async def __call__(self, ctx: "ToolContext", args: ToolArgs) -> ToolResult:
        return await self.handler(ctx, args)


def _location(error: dict) -> str:
    loc = error.get("loc") or ("arguments",)
    return ".".join(str(part) for part in loc)


def tool(
    args: type[ToolArgs] = NoArgs,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Callable[[Handler], Tool]:
    """Turn an async ``(ctx, args)`` function into a :class:`Tool`.

    The name defaults to the function name and the description to its
    docstring.
    """
    def decorator(func: Handler) -> Tool:
        return Tool(
            name=name or func.__name__,
            description=description or inspect.cleandoc(func.__doc__ or ""),
            args_model=args,
            handler=func,
        )
    return decorator


class ToolRegistry:
    """Explicit name -> tool dispatch table.

    Definitions are checked once, when registered, never per call.
    """

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for t in tools or []:
            self.register(t)

    def register(self, t: Tool) -> Tool:
        if not _TOOL_NAME.match(t.name):
            raise ToolRegistrationError(f"Invalid tool name: {t.name!r}")
        if t.name in self._tools:
            raise ToolRegistrationError(f"Duplicate tool name: {t.name}")
        if not (
            isinstance(t.args_model, type)
            and issubclass(t.args_model, BaseModel)
        ):
            raise ToolRegistrationError(
                f"Tool {t.name} needs a pydantic argument model"
            )
        if not inspect.iscoroutinefunction(t.handler):
            raise ToolRegistrationError(
                f"Tool {t.name} handler must be an async function"
            )
        if len(inspect.signature(t.handler).parameters) != 2:
            raise ToolRegistrationError(
                f"Tool {t.name} handler must accept (context, args)"
            )
        t.model_dump()
        self._tools[t.name] = t
        return t

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict]:
        return [t.model_dump() for t in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
