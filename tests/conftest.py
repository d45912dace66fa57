import json

import pytest

from codeloom.events import (
    Completed,
    ContentDelta,
    FinishReason,
    Started,
    StreamEvent,
    ToolCalls,
)
from codeloom.executor import ToolExecutor
from codeloom.interaction import FileChangeEvent, ToolInteractionCallback
from codeloom.memory import InMemoryMemoryStorage
from codeloom.message import ChatCompletionResponse, ResponseChoice, ResponseMessage
from codeloom.provider import ModelProvider
from codeloom.repository import LocalProjectRepository
from codeloom.streaming import ToolCallResponse
from codeloom.todos import TodoItem, TodoStore

PROJECT = "demo"


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------

def sse(payload: dict) -> str:
    """One ``data:`` line carrying *payload* as JSON."""
    return f"data: {json.dumps(payload)}"


def content_chunk(text: str, finish_reason: str | None = None) -> str:
    return sse({"choices": [{
        "index": 0, "delta": {"content": text}, "finish_reason": finish_reason,
    }]})


def tool_chunk(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> str:
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    fragment = {"index": index, "function": function}
    if call_id is not None:
        fragment["id"] = call_id
        fragment["type"] = "function"
    return sse({"choices": [{"index": 0, "delta": {"tool_calls": [fragment]}}]})


def finish_chunk(reason: str) -> str:
    return sse({"choices": [{"index": 0, "delta": {}, "finish_reason": reason}]})


async def aiter_lines(lines: list[str]):
    for line in lines:
        yield line


def make_call(name: str, args: dict | str, call_id: str = "call_1") -> ToolCallResponse:
    """A finalized tool call; *args* may be pre-encoded JSON text."""
    arguments = args if isinstance(args, str) else json.dumps(args)
    return ToolCallResponse(id=call_id, name=name, arguments=arguments)


# ---------------------------------------------------------------------------
# Scripted provider
# ---------------------------------------------------------------------------

def text_turn(text: str) -> list[StreamEvent]:
    return [Started(), ContentDelta(text=text), FinishReason(reason="stop"), Completed()]


def tool_turn(
    calls: list[ToolCallResponse], content: str | None = None,
) -> list[StreamEvent]:
    events: list[StreamEvent] = [Started()]
    if content:
        events.append(ContentDelta(text=content))
    events += [ToolCalls(calls=calls), FinishReason(reason="tool_calls"), Completed()]
    return events


class ScriptedProvider(ModelProvider):
    """Provider that replays pre-queued turns. No network calls."""

    def __init__(self, turns: list[list[StreamEvent]] | None = None):
        self.turns = list(turns or [])
        self.call_log: list[dict] = []

    async def stream_chat(
        self, model, messages, tools=None, temperature=None, max_tokens=None,
    ):
        self.call_log.append({
            "model": model, "messages": list(messages), "tools": tools,
        })
        for event in self.turns.pop(0):
            yield event

    async def complete(
        self, model, messages, tools=None, temperature=None, max_tokens=None,
    ):
        self.call_log.append({
            "model": model, "messages": list(messages), "tools": tools,
        })
        text = "".join(
            e.text for e in self.turns.pop(0) if isinstance(e, ContentDelta)
        )
        return ChatCompletionResponse(
            model=model,
            choices=[ResponseChoice(
                message=ResponseMessage(role="assistant", content=text),
                finish_reason="stop",
            )],
        )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class RecordingCallback(ToolInteractionCallback):
    """Records every hook invocation; answers questions from a queue."""

    def __init__(self, answers: list[str | None] | None = None):
        self.answers = list(answers or [])
        self.questions: list[tuple[str, list[str] | None]] = []
        self.file_events: list[FileChangeEvent] = []
        self.todos_created: list[TodoItem] = []
        self.todos_updated: list[TodoItem] = []
        self.finished: list[str] = []

    async def ask_user(self, question, options=None):
        self.questions.append((question, options))
        return self.answers.pop(0) if self.answers else None

    async def on_file_changed(self, event):
        self.file_events.append(event)

    async def on_todo_created(self, todo):
        self.todos_created.append(todo)

    async def on_todo_updated(self, todo):
        self.todos_updated.append(todo)

    async def on_task_finished(self, summary):
        self.finished.append(summary)


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / PROJECT
    root.mkdir()
    return root


@pytest.fixture
def write_files(project_dir):
    """Factory fixture: ``write_files({"src/app.js": "..."})``."""
    def _write(files: dict[str, str]):
        for path, content in files.items():
            target = project_dir / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
    return _write


@pytest.fixture
def repository(project_dir):
    return LocalProjectRepository(project_dir.parent)


@pytest.fixture
def memory():
    return InMemoryMemoryStorage()


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture
def executor(repository, memory, callback):
    return ToolExecutor(
        repository=repository, memory=memory, todos=TodoStore(), callback=callback,
    )


@pytest.fixture
def run_tool(executor):
    """Factory fixture: ``await run_tool("read_file", {"path": "a.txt"})``."""
    async def _run(name: str, args: dict | str | None = None, call_id: str = "call_1"):
        return await executor.execute(PROJECT, make_call(name, args or {}, call_id))
    return _run
