"""OpenAI-compatible chat-completion wire models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class MessageRole(Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    TOOL = "tool"


class FunctionCall(BaseModel):
    name: str
    arguments: str


class ToolCallRequest(BaseModel):
    id: str
    type: str = "function"
    function: FunctionCall


class ChatMessage(BaseModel):
    """One transcript entry as sent to the provider.

    ``model_dump()`` omits unset optional fields so plain messages stay
    ``{"role", "content"}``.
    """

    role: MessageRole
    content: str | None = None
    tool_calls: list[ToolCallRequest] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    @field_serializer('role')
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value

    def model_dump(self, **kwargs) -> dict[str, Any]:
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(
        cls,
        content: str | None,
        tool_calls: list[ToolCallRequest] | None = None,
    ) -> "ChatMessage":
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tool_calls or None,
        )

    @classmethod
    def tool_result(
        cls, tool_call_id: str, content: str, name: str | None = None,
    ) -> "ChatMessage":
        return cls(
            role=MessageRole.TOOL,
            content=content,
            tool_call_id=tool_call_id,
            name=name,
        )


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    stream: bool = True
    temperature: float = 0.7
    max_tokens: int | None = None
    tools: list[dict] | None = None
    tool_choice: str | None = None

    def to_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``chat.completions.create``.

        ``tools`` and ``tool_choice`` are only sent together.
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [m.model_dump() for m in self.messages],
            "temperature": self.temperature,
        }
        if self.stream:
            kwargs["stream"] = True
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if self.tools:
            kwargs["tools"] = self.tools
            kwargs["tool_choice"] = self.tool_choice or "auto"
        return kwargs


# ---------------------------------------------------------------------------
# Streaming response payloads
# ---------------------------------------------------------------------------

class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FunctionCallDelta(_Lenient):
    name: str | None = None
    arguments: str | None = None


class ToolCallDeltaPayload(_Lenient):
    index: int = 0
    id: str | None = None
    type: str | None = None
    function: FunctionCallDelta | None = None


class DeltaMessage(_Lenient):
    role: str | None = None
    content: str | None = None
    reasoning_content: str | None = None
    tool_calls: list[ToolCallDeltaPayload] | None = None


class StreamChoice(_Lenient):
    index: int = 0
    delta: DeltaMessage | None = None
    finish_reason: str | None = None


class StreamChunk(_Lenient):
    id: str | None = None
    choices: list[StreamChoice] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Non-streaming response and error bodies
# ---------------------------------------------------------------------------

class ResponseMessage(_Lenient):
    role: str | None = None
    content: str | None = None
    reasoning_content: str | None = None
    tool_calls: list[ToolCallRequest] | None = None


class ResponseChoice(_Lenient):
    index: int = 0
    message: ResponseMessage | None = None
    finish_reason: str | None = None


class Usage(_Lenient):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(_Lenient):
    id: str | None = None
    model: str | None = None
    choices: list[ResponseChoice] = Field(default_factory=list)
    usage: Usage | None = None


class ApiError(_Lenient):
    message: str | None = None
    type: Any = None
    code: Any = None


class ApiErrorResponse(_Lenient):
    error: ApiError | None = None
