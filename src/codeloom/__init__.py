from codeloom.capability import Capability
from codeloom.config import ProviderConfig, configure_logging
from codeloom.context import ToolContext
from codeloom.executor import ToolExecutor
from codeloom.instrumentation import instrument, uninstrument
from codeloom.interaction import FileChangeEvent, FileChangeType, ToolInteractionCallback
from codeloom.memory import InMemoryMemoryStorage, JsonFileMemoryStorage, MemoryStorage
from codeloom.provider import ModelProvider, OpenAICompatibleProvider, OpenAIProvider, OpenRouter
from codeloom.repository import LocalProjectRepository, ProjectRepository, RepoResult
from codeloom.runner import Runner, RunResult
from codeloom.segmenter import ContentSegmenter, format_tool_status, parse_content
from codeloom.session import Session
from codeloom.streaming import StreamEventDecoder, ToolCallAccumulator, ToolCallResponse
from codeloom.todos import TodoItem, TodoStatus, TodoStore
from codeloom.tools import Tool, ToolArgs, ToolRegistry, ToolResult, tool

__all__ = [
    "Capability",
    "ContentSegmenter",
    "FileChangeEvent",
    "FileChangeType",
    "InMemoryMemoryStorage",
    "JsonFileMemoryStorage",
    "LocalProjectRepository",
    "MemoryStorage",
    "ModelProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "OpenRouter",
    "ProjectRepository",
    "ProviderConfig",
    "RepoResult",
    "RunResult",
    "Runner",
    "Session",
    "StreamEventDecoder",
    "TodoItem",
    "TodoStatus",
    "TodoStore",
    "Tool",
    "ToolArgs",
    "ToolCallAccumulator",
    "ToolCallResponse",
    "ToolContext",
    "ToolExecutor",
    "ToolInteractionCallback",
    "ToolRegistry",
    "ToolResult",
    "configure_logging",
    "format_tool_status",
    "instrument",
    "parse_content",
    "tool",
    "uninstrument",
]
