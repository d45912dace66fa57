import json
import logging

from codeloom.capability import Capability
from codeloom.context import ToolContext
from codeloom.control_tools import ControlTools
from codeloom.errors import (
    InvalidArgumentError,
    MissingArgumentError,
    ToolParseError,
    UnknownToolError,
)
from codeloom.file_tools import FileTools
from codeloom.instrumentation import record_error, record_tool_result, tool_span
from codeloom.interaction import ToolInteractionCallback
from codeloom.memory import MemoryStorage
from codeloom.memory_tools import MemoryTools
from codeloom.repository import ProjectRepository
from codeloom.search_tools import SearchTools
from codeloom.streaming import ToolCallResponse
from codeloom.todo_tools import TodoTools
from codeloom.todos import TodoStore
from codeloom.tools import ToolRegistry, ToolResult

logger = logging.getLogger(__name__)


def default_capabilities() -> list[Capability]:
    return [FileTools(), SearchTools(), MemoryTools(), TodoTools(), ControlTools()]


def parse_arguments(raw: str) -> dict:
    """Decode a tool call's argument text into a JSON object.

    Blank text is treated as an empty object.

    Raises:
        ToolParseError: If the text is not JSON or not an object.
    """
    if not raw or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ToolParseError(f"Invalid JSON arguments: {e}") from e
    if not isinstance(value, dict):
        raise ToolParseError(
            f"Arguments must be a JSON object, got {type(value).__name__}"
        )
    return value


class ToolExecutor:
    """Dispatches finalized tool calls to their handlers.

    Every failure, from unparseable arguments to a crashing handler,
    comes back as a failed :class:`ToolResult`; nothing is raised to the
    caller, so one bad call never aborts a batch.

    Args:
        repository: Project file-system collaborator.
        memory: Key/value memory storage.
        todos: Todo store; a fresh one is created when omitted.
        callback: Optional user-interface hooks.
        capabilities: Tool groups to register; all built-in groups by
            default.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        memory: MemoryStorage,
        todos: TodoStore | None = None,
        callback: ToolInteractionCallback | None = None,
        capabilities: list[Capability] | None = None,
    ):
        self.repository = repository
        self.memory = memory
        self.todos = todos if todos is not None else TodoStore()
        self.callback = callback
        self.registry = ToolRegistry()
        for capability in capabilities if capabilities is not None else default_capabilities():
            for t in capability.tools():
                self.registry.register(t)

    def schemas(self) -> list[dict]:
        return self.registry.schemas()

    def names(self) -> list[str]:
        return self.registry.names()

    def context(self, project_id: str) -> ToolContext:
        return ToolContext(
            project_id=project_id,
            repository=self.repository,
            memory=self.memory,
            todos=self.todos,
            callback=self.callback,
        )

    async def execute(self, project_id: str, call: ToolCallResponse) -> ToolResult:
        async with tool_span(call.name, call.id) as span:
            result = await self._execute(project_id, call, span)
            record_tool_result(span, result.success, result.error)
            return result

    async def _execute(self, project_id: str, call: ToolCallResponse, span) -> ToolResult:
        try:
            raw = parse_arguments(call.arguments)
        except ToolParseError as e:
            logger.warning(f"Could not parse arguments for {call.name}: {e}")
            return ToolResult.fail(f"Error executing tool: {e}")

        try:
            t = self.registry.get(call.name)
            if t is None:
                raise UnknownToolError(call.name)
            args = t.parse_arguments(raw)
        except (UnknownToolError, MissingArgumentError, InvalidArgumentError) as e:
            logger.warning(f"Rejected tool call {call.name}: {e}")
            return ToolResult.fail(str(e))

        logger.info(f"Calling {call.name} with {raw}")
        try:
            result = await t(self.context(project_id), args)
        except Exception as e:
            logger.exception(f"Tool {call.name} raised: {e}")
            record_error(span, e)
            return ToolResult.fail(f"Error executing tool: {e}")

        if not result.success:
            logger.info(f"Tool {call.name} failed: {result.error}")
        return result

    async def end_session(self, project_id: str) -> None:
        """Drop the session-scoped state of a project (its todo list)."""
        await self.todos.clear(project_id)
