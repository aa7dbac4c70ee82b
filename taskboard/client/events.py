"""Parsing of the board server-sent event stream."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator


@dataclass(frozen=True)
class RemoteEvent:
    """One event received from a board room."""

    event: str
    data: Any
    id: str | None = None


def _decode(data: str) -> Any:
    try:
        return json.loads(data)
    except ValueError:
        return data


async def parse_sse(lines: AsyncIterable[str]) -> AsyncIterator[RemoteEvent]:
    """Turn raw SSE lines into events.

    Comment lines (keep-alive pings) are skipped, and an event left unterminated
    when the stream ends is discarded.
    """
    event = "message"
    event_id: str | None = None
    data_lines: list[str] = []
    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data_lines:
                yield RemoteEvent(event=event, data=_decode("\n".join(data_lines)), id=event_id)
            event, event_id, data_lines = "message", None, []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if name == "event":
            event = value
        elif name == "data":
            data_lines.append(value)
        elif name == "id":
            event_id = value
