"""
Stream events emitted during a streamed conversation turn.

Events form a tagged union: every class carries a ``type`` tag and
serializes to a plain dict with ``to_dict()``.  They are delivered to the
caller's event sink strictly in emission order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Union

from chefmate.types import OrchestrationResult

EVENT_TOKEN = "token"
EVENT_TOOL_CALL = "tool_call"
EVENT_TOOL_RESULT = "tool_result"
EVENT_DONE = "done"
EVENT_ERROR = "error"


@dataclass
class TokenEvent:
    """A fragment of assistant text, forwarded as soon as it arrives."""

    type: ClassVar[str] = EVENT_TOKEN
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.text}


@dataclass
class ToolCallStartedEvent:
    type: ClassVar[str] = EVENT_TOOL_CALL
    name: str
    arguments: dict = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name, "args": self.arguments}


@dataclass
class ToolResultEvent:
    type: ClassVar[str] = EVENT_TOOL_RESULT
    name: str
    result: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name, "result": self.result}


@dataclass
class DoneEvent:
    """Terminal event; carries the complete result of the turn."""

    type: ClassVar[str] = EVENT_DONE
    result: OrchestrationResult

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **self.result.to_dict()}


@dataclass
class ErrorEvent:
    type: ClassVar[str] = EVENT_ERROR
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


StreamEvent = Union[
    TokenEvent, ToolCallStartedEvent, ToolResultEvent, DoneEvent, ErrorEvent
]

EventSink = Callable[[StreamEvent], Awaitable[None]]
