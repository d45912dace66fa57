"""Events emitted while streaming a completion and running the agent loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codeloom.streaming import ToolCallResponse


# ---------------------------------------------------------------------------
# Provider stream events
# ---------------------------------------------------------------------------

@dataclass
class StreamEvent:
    """Base for all provider stream events."""

    terminal = False


@dataclass
class Started(StreamEvent):
    """The HTTP response opened and the stream is flowing."""


@dataclass
class ContentDelta(StreamEvent):
    text: str = ""


@dataclass
class ToolCalls(StreamEvent):
    """Finalized tool calls, in index order."""

    calls: list[ToolCallResponse] = field(default_factory=list)


@dataclass
class FinishReason(StreamEvent):
    reason: str = ""


@dataclass
class StreamError(StreamEvent):
    """Terminal failure with a user-facing message."""

    message: str = ""
    status_code: int | None = None
    terminal = True


@dataclass
class Completed(StreamEvent):
    """Terminal success: the provider sent ``[DONE]``."""

    terminal = True


# ---------------------------------------------------------------------------
# Agent loop events
# ---------------------------------------------------------------------------

@dataclass
class RunEvent:
    """Base for events yielded by :meth:`codeloom.runner.Runner.iter`."""


@dataclass
class RawResponseEvent(RunEvent):
    """Token-level delta from the provider stream."""

    content: str = ""


@dataclass
class RunItemEvent(RunEvent):
    """A discrete step in the agent loop.

    ``name`` values: ``"tool_call"``, ``"message"``, ``"error"``.
    """

    name: str = ""
    data: dict = field(default_factory=dict)


@dataclass
class RunCompleteEvent(RunEvent):
    """Final event. Always the last event yielded."""

    result: Any = None
