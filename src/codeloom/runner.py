import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from codeloom.control_tools import FINISH_TASK
from codeloom.events import (
    Completed,
    ContentDelta,
    RawResponseEvent,
    RunCompleteEvent,
    RunEvent,
    RunItemEvent,
    StreamError,
    ToolCalls,
)
from codeloom.executor import ToolExecutor
from codeloom.instrumentation import run_span
from codeloom.memory import memory_context
from codeloom.message import ChatMessage
from codeloom.provider import ModelProvider
from codeloom.segmenter import ToolStatus, format_tool_status
from codeloom.session import Session
from codeloom.streaming import ToolCallResponse
from codeloom.tools import ToolResult

logger = logging.getLogger(__name__)

MAX_TURNS_MESSAGE = "Maximum turns reached. Please try again."


@dataclass
class RunResult:
    """The result of a single Runner.run() invocation.

    At most one of ``error``, ``cancelled`` and ``finished`` is set; none
    of them means the model answered with plain text.
    """

    last_message: ChatMessage | None = None
    display_text: str = ""
    error: str | None = None
    status_code: int | None = None
    cancelled: bool = False
    finished: bool = False
    turns: int = 0


class Runner:
    """Executes the tool-calling loop for one project session.

    The Runner reads the session transcript and appends assistant
    responses, tool-call requests, and tool results during its loop.
    It injects the system prompt at call time (never storing it in
    the transcript) with the project's saved memories appended.

    ``run()`` drains ``iter()``.  ``iter()`` is the streaming entry point.

    Args:
        provider: Streams the completions.
        executor: Runs the tool calls.
        model: Model identifier sent with every request.
        max_turns: Maximum number of provider round-trips before
            returning a timeout message.
        parallel_tool_calls: Run one turn's tool calls concurrently.
            Results are still attached in call order.
    """

    def __init__(
        self,
        provider: ModelProvider,
        executor: ToolExecutor,
        model: str,
        max_turns: int = 50,
        parallel_tool_calls: bool = False,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        self.provider = provider
        self.executor = executor
        self.model = model
        self.max_turns = max_turns
        self.parallel_tool_calls = parallel_tool_calls
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def run(self, session: Session, system_prompt: str) -> RunResult:
        """Run the agent loop until a final response, error or finish."""
        result: RunResult | None = None
        async for event in self.iter(session, system_prompt):
            if isinstance(event, RunCompleteEvent):
                result = event.result
        if result is None:
            raise RuntimeError("iter() ended without emitting RunCompleteEvent")
        return result

    async def iter(
        self, session: Session, system_prompt: str,
    ) -> AsyncIterator[RunEvent]:
        """Run the agent loop, yielding events as execution proceeds."""
        async with run_span(session.project_id, self.model):
            prompt = await self._system_prompt(session.project_id, system_prompt)
            tool_schemas = self.executor.schemas()
            display: list[str] = []

            for turn in range(1, self.max_turns + 1):
                messages = [ChatMessage.system(prompt), *session.transcript]

                content = ""
                calls: list[ToolCallResponse] = []
                terminal = None
                async for event in self.provider.stream_chat(
                    model=self.model,
                    messages=messages,
                    tools=tool_schemas or None,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ):
                    if isinstance(event, ContentDelta):
                        content += event.text
                        yield RawResponseEvent(content=event.text)
                    elif isinstance(event, ToolCalls):
                        calls.extend(event.calls)
                    elif isinstance(event, (StreamError, Completed)):
                        terminal = event

                if content:
                    display.append(content)

                if isinstance(terminal, StreamError):
                    yield RunItemEvent(name="error", data={
                        "message": terminal.message,
                        "status_code": terminal.status_code,
                    })
                    yield RunCompleteEvent(result=RunResult(
                        last_message=session.transcript[-1] if session.transcript else None,
                        display_text=_join(display),
                        error=terminal.message,
                        status_code=terminal.status_code,
                        turns=turn,
                    ))
                    return

                if terminal is None:
                    logger.warning(f"Stream for {session.project_id} ended early; run cancelled")
                    yield RunCompleteEvent(result=RunResult(
                        last_message=session.transcript[-1] if session.transcript else None,
                        display_text=_join(display),
                        cancelled=True,
                        turns=turn,
                    ))
                    return

                # No tool calls: final text response
                if not calls:
                    msg = ChatMessage.assistant(content)
                    session.transcript.append(msg)
                    yield RunItemEvent(name="message", data={"content": content})
                    yield RunCompleteEvent(result=RunResult(
                        last_message=msg, display_text=_join(display), turns=turn,
                    ))
                    return

                session.transcript.append(ChatMessage.assistant(
                    content or None, tool_calls=[c.to_wire() for c in calls],
                ))
                results = await self._execute_tools(session.project_id, calls)

                finished = False
                for call, result in zip(calls, results):
                    output = result.as_model_content()
                    session.transcript.append(
                        ChatMessage.tool_result(call.id, output, call.name)
                    )
                    display.append(format_tool_status(
                        call.name,
                        ToolStatus.SUCCESS if result.success else ToolStatus.ERROR,
                        result.output if result.success else result.error,
                    ))
                    yield RunItemEvent(name="tool_call", data={
                        "tool_name": call.name, "call_id": call.id,
                        "output": output, "is_error": not result.success,
                    })
                    if call.name == FINISH_TASK and result.success:
                        finished = True

                if finished:
                    logger.info(f"Task finished for {session.project_id} after {turn} turn(s)")
                    yield RunCompleteEvent(result=RunResult(
                        last_message=session.transcript[-1],
                        display_text=_join(display),
                        finished=True,
                        turns=turn,
                    ))
                    return

            # Max turns exceeded
            timeout_msg = ChatMessage.assistant(MAX_TURNS_MESSAGE)
            session.transcript.append(timeout_msg)
            display.append(MAX_TURNS_MESSAGE)
            yield RunCompleteEvent(result=RunResult(
                last_message=timeout_msg,
                display_text=_join(display),
                turns=self.max_turns,
            ))

    async def _system_prompt(self, project_id: str, system_prompt: str) -> str:
        memories = await memory_context(self.executor.memory, project_id)
        if not memories:
            return system_prompt
        return f"{system_prompt}\n\n{memories}"

    # ------------------------------------------------------------------
    # Tool execution
    # ------------------------------------------------------------------

    async def _execute_tools(
        self, project_id: str, calls: list[ToolCallResponse],
    ) -> list[ToolResult]:
        if self.parallel_tool_calls and len(calls) > 1:
            # gather keeps results in call order
            return list(await asyncio.gather(*(
                self.executor.execute(project_id, call) for call in calls
            )))
        results = []
        for call in calls:
            results.append(await self.executor.execute(project_id, call))
        return results


def _join(parts: list[str]) -> str:
    return "\n\n".join(part.strip("\n") for part in parts if part.strip())
