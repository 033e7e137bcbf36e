"""Server-sent-events framing for stream events."""

from __future__ import annotations

import json
from typing import Awaitable, Callable

from chefmate.orchestrator.events import StreamEvent


def encode_sse(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.to_dict(), default=str)}\n\n"


class SSEEventSink:
    """
    Adapts an async text writer into an event sink.

    Each event is written as one ``data:`` frame, in the order received.
    """

    def __init__(self, write: Callable[[str], Awaitable[object]]) -> None:
        self._write = write
        self.frames_sent = 0

    async def __call__(self, event: StreamEvent) -> None:
        await self._write(encode_sse(event))
        self.frames_sent += 1
