"""Split the model's visible text into renderable content blocks.

The display transcript interleaves prose, reasoning tags and tool-status
lines written by :func:`format_tool_status`::

    Let me create the page.

    🔧 **write_file**
    ✅ File created: index.html (+12 -0)

:func:`parse_content` turns such text into an ordered list of
:class:`ReasoningBlock`, :class:`ToolCallBlock`, :class:`TextBlock` and
:class:`CodeBlock` values.  :class:`ContentSegmenter` gives the same
result for a growing stream without re-parsing finished segments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from codeloom.matching import DiffStats

TOOL_MARKER = "🔧"


class ToolStatus(Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


STATUS_GLYPHS = {
    ToolStatus.SUCCESS: "✅",
    ToolStatus.ERROR: "❌",
    ToolStatus.RUNNING: "⏳",
}
_GLYPH_STATUS = {glyph: status for status, glyph in STATUS_GLYPHS.items()}

REASONING_TAGS = ("thinking", "reasoning", "think", "thought")

# Tools whose output names the file they touched.
FILE_PATH_TOOLS = frozenset({
    "read_file", "write_file", "delete_file", "create_folder", "rename_file",
    "copy_file", "move_file", "get_file_info", "insert_at_line",
    "append_to_file", "read_lines", "patch_file",
})

_SEGMENT_BOUNDARY = re.compile(r"\n\n(?=" + TOOL_MARKER + ")")
_TAG_NAMES = "|".join(REASONING_TAGS)
_CLOSED_REASONING = re.compile(
    rf"<({_TAG_NAMES})>(.*?)</\1>", re.IGNORECASE | re.DOTALL,
)
_OPEN_REASONING = re.compile(rf"<({_TAG_NAMES})>(.*)\Z", re.IGNORECASE | re.DOTALL)
_CODE_FENCE = re.compile(r"```([\w+#.-]*)[ \t]*\n(.*?)```", re.DOTALL)
_TOOL_HEADER = re.compile(
    TOOL_MARKER + r"\s*\*\*([^*\n]+)\*\*[ \t]*(?:\n(.*))?\Z", re.DOTALL,
)
_PATH = re.compile(r"[A-Za-z0-9_\-./]+\.[A-Za-z0-9]+")
_TRAILING_STATS = re.compile(r"\(\+(\d+) -(\d+)\)\s*$")
_BLANK_LINES = re.compile(r"\n\s*\n")


@dataclass
class ReasoningBlock:
    text: str
    is_active: bool = False


@dataclass
class ToolCallBlock:
    name: str
    status: ToolStatus
    output: str | None = None
    file_path: str | None = None
    diff_stats: DiffStats | None = None


@dataclass
class TextBlock:
    text: str


@dataclass
class CodeBlock:
    code: str
    language: str | None = None


ContentBlock = ReasoningBlock | ToolCallBlock | TextBlock | CodeBlock


def format_tool_status(name: str, status: ToolStatus, output: str | None = None) -> str:
    """Render a tool-status line that :func:`parse_content` reads back.

    Blank lines in *output* are collapsed so the status stays one
    segment.
    """
    line = f"{TOOL_MARKER} **{name}**\n{STATUS_GLYPHS[status]}"
    body = _BLANK_LINES.sub("\n", (output or "").strip())
    return f"{line} {body}" if body else line


def parse_content(text: str, is_streaming: bool = False) -> list[ContentBlock]:
    """Parse *text* into content blocks, in stream order.

    With *is_streaming* an unclosed reasoning tag at the end of a text
    segment becomes an active :class:`ReasoningBlock`; otherwise it stays
    literal text.  Never drops content: if nothing else is produced the
    whole input comes back as a single :class:`TextBlock`, unless it is
    only whitespace.
    """
    blocks: list[ContentBlock] = []
    for segment in _SEGMENT_BOUNDARY.split(text):
        blocks.extend(_parse_segment(segment, is_streaming))
    return _ensure_total(blocks, text)


class ContentSegmenter:
    """Incremental :func:`parse_content` for a growing stream.

    Segments that are followed by a tool marker can no longer change, so
    their blocks are kept and only the open tail is parsed again.  Input
    that does not extend the previous text triggers a full reparse.

    Example::

        segmenter = ContentSegmenter()
        async for event in runner.iter(session, prompt):
            if isinstance(event, RawResponseEvent):
                text += event.content
                render(segmenter.update(text))
    """

    def __init__(self, is_streaming: bool = True):
        self.is_streaming = is_streaming
        self.reset()

    def reset(self) -> None:
        self._prefix = ""
        self._done: list[ContentBlock] = []

    def update(self, text: str) -> list[ContentBlock]:
        if not text.startswith(self._prefix):
            self.reset()

        consumed = len(self._prefix)
        segments = _SEGMENT_BOUNDARY.split(text[consumed:])
        for segment in segments[:-1]:
            self._done.extend(_parse_segment(segment, self.is_streaming))
            consumed += len(segment) + 2
        self._prefix = text[:consumed]

        blocks = self._done + _parse_segment(segments[-1], self.is_streaming)
        return _ensure_total(blocks, text)


def _ensure_total(blocks: list[ContentBlock], text: str) -> list[ContentBlock]:
    if not blocks and text.strip():
        return [TextBlock(text)]
    return blocks


def _parse_segment(segment: str, is_streaming: bool) -> list[ContentBlock]:
    if segment.startswith(TOOL_MARKER):
        head, _, prose = segment.partition("\n\n")
        block = _parse_tool(head)
        if block is not None:
            return [block, *_parse_text(prose, is_streaming)]
    return _parse_text(segment, is_streaming)


def _parse_tool(head: str) -> ToolCallBlock | None:
    match = _TOOL_HEADER.match(head)
    if match is None:
        return None
    name = match.group(1).strip()
    rest = (match.group(2) or "").strip()

    status = ToolStatus.RUNNING
    if rest[:1] in _GLYPH_STATUS:
        status = _GLYPH_STATUS[rest[:1]]
        rest = rest[1:].strip()
    output = rest or None

    file_path = None
    stats = None
    if output:
        first_line = output.split("\n", 1)[0]
        if name in FILE_PATH_TOOLS:
            paths = _PATH.findall(first_line)
            file_path = paths[-1] if paths else None
        found = _TRAILING_STATS.search(first_line)
        if found:
            stats = DiffStats(added=int(found.group(1)), removed=int(found.group(2)))

    return ToolCallBlock(
        name=name, status=status, output=output,
        file_path=file_path, diff_stats=stats,
    )


def _parse_text(text: str, is_streaming: bool) -> list[ContentBlock]:
    blocks: list[ContentBlock] = []
    cursor = 0
    for match in _CLOSED_REASONING.finditer(text):
        blocks.extend(_prose_blocks(text[cursor:match.start()]))
        blocks.append(ReasoningBlock(match.group(2).strip(), is_active=False))
        cursor = match.end()

    tail = text[cursor:]
    if is_streaming:
        unclosed = _OPEN_REASONING.search(tail)
        if unclosed is not None:
            blocks.extend(_prose_blocks(tail[:unclosed.start()]))
            blocks.append(ReasoningBlock(unclosed.group(2).strip(), is_active=True))
            return blocks
    blocks.extend(_prose_blocks(tail))
    return blocks


def _prose_blocks(text: str) -> list[ContentBlock]:
    blocks: list[ContentBlock] = []
    cursor = 0
    for match in _CODE_FENCE.finditer(text):
        before = text[cursor:match.start()].strip()
        if before:
            blocks.append(TextBlock(before))
        blocks.append(CodeBlock(
            code=match.group(2).rstrip("\n"),
            language=match.group(1) or None,
        ))
        cursor = match.end()
    rest = text[cursor:].strip()
    if rest:
        blocks.append(TextBlock(rest))
    return blocks
