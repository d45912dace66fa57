"""Server-Sent Events line framing."""

from __future__ import annotations

DONE_SENTINEL = "[DONE]"


def parse_sse_line(line: str) -> str | None:
    """Return the ``data`` payload of one SSE line, or ``None``.

    Blank lines, ``:`` comments (keep-alives) and other fields such as
    ``event:`` or ``id:`` carry no payload.
    """
    line = line.rstrip("\r\n")
    if not line or line.startswith(":"):
        return None
    if not line.startswith("data:"):
        return None
    payload = line[len("data:"):]
    if payload.startswith(" "):
        payload = payload[1:]
    return payload
