"""Core types for the LLM subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field

from chefmate.types import Usage


class Role:
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCallRef:
    """
    A tool call requested by the model.

    ``arguments_text`` is the raw JSON text exactly as the model produced it.
    It is decoded by the round controller, which tolerates invalid payloads.
    """

    id: str
    name: str
    arguments_text: str = ""


@dataclass
class Message:
    """A single message in a conversation."""

    role: str  # Role.SYSTEM / USER / ASSISTANT / TOOL
    content: str | None
    tool_calls: list[ToolCallRef] | None = None
    tool_call_id: str | None = None

    def to_wire(self) -> dict:
        """Serialize to the OpenAI chat-completions message shape."""
        m: dict = {"role": self.role, "content": self.content}
        if self.tool_calls:
            m["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": tc.arguments_text or "{}",
                    },
                }
                for tc in self.tool_calls
            ]
        if self.tool_call_id:
            m["tool_call_id"] = self.tool_call_id
        return m


@dataclass
class RawToolDelta:
    """
    An incremental fragment of a streamed tool call.

    ``call_index`` is the only stable correlation key: ``id`` may be empty on
    the first fragment, and fragments for different indices can interleave.
    """

    call_index: int
    id: str | None = None
    name: str = ""
    args_delta: str = ""


@dataclass
class StreamChunk:
    """
    A single chunk yielded while streaming a chat completion.

    *delta* carries new text content.
    *tool_deltas* carries incremental tool-call fragments.
    *finish_reason* is set by the backend on the closing chunk of a choice.
    *usage* is set when the backend reports token counts (usually last).
    *done* is ``True`` on the final chunk.
    """

    delta: str = ""
    tool_deltas: list[RawToolDelta] | None = None
    finish_reason: str | None = None
    usage: Usage | None = None
    done: bool = False


@dataclass
class ModelReply:
    """One complete model turn: either terminal text or requested tool calls."""

    content: str
    tool_calls: list[ToolCallRef] = field(default_factory=list)
    usage: Usage | None = None
    finish_reason: str | None = None
