"""Streaming primitives for provider responses.

:class:`StreamEventDecoder` turns SSE lines into :class:`StreamEvent`
objects.  The :class:`ToolCallAccumulator` reassembles tool calls whose
arguments arrive in fragments across multiple chunks.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from pydantic import ValidationError

from codeloom.events import (
    Completed,
    ContentDelta,
    FinishReason,
    StreamError,
    StreamEvent,
    ToolCalls,
)
from codeloom.errors import extract_error_message
from codeloom.message import FunctionCall, StreamChunk, ToolCallRequest
from codeloom.sse import DONE_SENTINEL, parse_sse_line

logger = logging.getLogger(__name__)


@dataclass
class ToolCallDelta:
    """A fragment of a tool call from a streaming chunk."""

    index: int
    call_id: str | None = None
    name: str | None = None
    arguments_delta: str | None = None


@dataclass
class ToolCallResponse:
    """A finalized tool call ready for execution and the transcript."""

    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_wire(self) -> ToolCallRequest:
        return ToolCallRequest(
            id=self.id,
            function=FunctionCall(name=self.name, arguments=self.arguments),
        )


@dataclass
class _Slot:
    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class ToolCallAccumulator:
    """Assembles complete tool calls from streaming fragments.

    Each ``index`` owns one slot.  ``finalize()`` snapshots every open
    slot and returns the accumulator to idle, so a slot is finalized
    exactly once.
    """

    def __init__(self) -> None:
        self._pending: dict[int, _Slot] = {}

    @property
    def has_open_slots(self) -> bool:
        return bool(self._pending)

    def feed(self, fragment: ToolCallDelta) -> None:
        if fragment.index not in self._pending:
            self._pending[fragment.index] = _Slot()
        slot = self._pending[fragment.index]
        if fragment.call_id:
            slot.id = fragment.call_id
        if fragment.name:
            slot.name = fragment.name
        if fragment.arguments_delta is not None:
            slot.arguments.append(fragment.arguments_delta)

    def finalize(self) -> list[ToolCallResponse]:
        """Return completed tool calls in index order."""
        calls = []
        for index in sorted(self._pending):
            slot = self._pending[index]
            calls.append(ToolCallResponse(
                id=slot.id or f"call_{uuid.uuid4().hex[:24]}",
                name=slot.name,
                arguments="".join(slot.arguments),
            ))
        self._pending = {}
        return calls


class StreamEventDecoder:
    """Decodes an OpenAI-style SSE stream into :class:`StreamEvent` values.

    Parsing is line oriented.  A malformed payload is logged and
    skipped; it never ends the stream.  After a terminal event every
    further line is ignored.
    """

    def __init__(self) -> None:
        self.accumulator = ToolCallAccumulator()
        self.done = False

    def feed_line(self, line: str) -> list[StreamEvent]:
        if self.done:
            return []
        payload = parse_sse_line(line)
        if payload is None:
            return []
        if payload.strip() == DONE_SENTINEL:
            return self.finish()
        return self._decode_payload(payload)

    def finish(self) -> list[StreamEvent]:
        """Handle ``[DONE]``: flush open tool calls, then complete."""
        if self.done:
            return []
        events: list[StreamEvent] = []
        if self.accumulator.has_open_slots:
            events.append(ToolCalls(calls=self.accumulator.finalize()))
        events.append(Completed())
        self.done = True
        return events

    async def decode(
        self, lines: AsyncIterator[str],
    ) -> AsyncIterator[StreamEvent]:
        async for line in lines:
            for event in self.feed_line(line):
                yield event
            if self.done:
                return
        if not self.done:
            logger.warning(
                "Stream ended without [DONE]; treating it as cancelled"
            )

    def _decode_payload(self, payload: str) -> list[StreamEvent]:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping malformed stream line: {e}")
            return []

        if isinstance(data, dict) and data.get("error"):
            self.done = True
            message = extract_error_message(data) or "The provider reported an error"
            return [StreamError(message=message)]

        try:
            chunk = StreamChunk.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Skipping unexpected stream payload: {e}")
            return []

        if not chunk.choices:
            return []

        events: list[StreamEvent] = []
        choice = chunk.choices[0]
        delta = choice.delta
        if delta is not None:
            if delta.content:
                events.append(ContentDelta(text=delta.content))
            for tc in delta.tool_calls or []:
                self.accumulator.feed(ToolCallDelta(
                    index=tc.index,
                    call_id=tc.id,
                    name=tc.function.name if tc.function else None,
                    arguments_delta=(
                        tc.function.arguments if tc.function else None
                    ),
                ))

        if choice.finish_reason:
            if (
                choice.finish_reason == "tool_calls"
                and self.accumulator.has_open_slots
            ):
                events.append(ToolCalls(calls=self.accumulator.finalize()))
            events.append(FinishReason(reason=choice.finish_reason))
        return events
