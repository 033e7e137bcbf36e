"""
Mock model backends for testing.

Scripted replies let tests drive the round controller through both the
request/response and the streaming call without hitting real APIs.
"""

from __future__ import annotations

import json
from typing import AsyncIterator

from chefmate.llm.providers.base import Provider
from chefmate.llm.types import (
    Message,
    ModelReply,
    RawToolDelta,
    StreamChunk,
    ToolCallRef,
)
from chefmate.types import ProviderError, Usage


def text_reply(text: str, usage: Usage | None = None) -> ModelReply:
    return ModelReply(content=text, usage=usage, finish_reason="stop")


def tool_reply(
    *calls: tuple[str, dict | str] | tuple[str, dict | str, str],
    content: str = "",
    usage: Usage | None = None,
) -> ModelReply:
    """
    Build a reply requesting tool calls.

    Each call is ``(name, args)`` or ``(name, args, call_id)``; *args* may be
    a dict or raw argument text (to simulate malformed JSON).
    """
    refs = []
    for i, call in enumerate(calls):
        name, args = call[0], call[1]
        call_id = call[2] if len(call) > 2 else f"call_{name}_{i}"
        text = args if isinstance(args, str) else json.dumps(args)
        refs.append(ToolCallRef(id=call_id, name=name, arguments_text=text))
    return ModelReply(content=content, tool_calls=refs, usage=usage, finish_reason="tool_calls")


def reply_to_chunks(reply: ModelReply) -> list[StreamChunk]:
    """
    Split a reply into streaming chunks the way a real backend would.

    Text goes out one word at a time.  Each tool call is cut into several
    fragments: the id arrives on the second fragment only, and fragments of
    different calls are interleaved with higher indices first.
    """
    chunks: list[StreamChunk] = []
    words = reply.content.split(" ") if reply.content else []
    for i, word in enumerate(words):
        suffix = " " if i < len(words) - 1 else ""
        chunks.append(StreamChunk(delta=word + suffix))

    fragments: list[list[RawToolDelta]] = []
    for idx, call in enumerate(reply.tool_calls):
        third = max(1, len(call.arguments_text) // 3)
        parts = [
            call.arguments_text[:third],
            call.arguments_text[third : 2 * third],
            call.arguments_text[2 * third :],
        ]
        fragments.append(
            [
                RawToolDelta(call_index=idx, id="", name=call.name),
                RawToolDelta(call_index=idx, id=call.id, args_delta=parts[0]),
                RawToolDelta(call_index=idx, args_delta=parts[1]),
                RawToolDelta(call_index=idx, args_delta=parts[2]),
            ]
        )
    for step in range(4):
        for per_call in reversed(fragments):
            chunks.append(StreamChunk(tool_deltas=[per_call[step]]))

    chunks.append(StreamChunk(finish_reason=reply.finish_reason))
    if reply.usage is not None:
        chunks.append(StreamChunk(usage=reply.usage))
    chunks.append(StreamChunk(done=True))
    return chunks


class ScriptedProvider(Provider):
    """
    A backend that plays back pre-configured replies, one per model call.

    Usage::

        provider = ScriptedProvider([
            tool_reply(("get_inventory", {})),
            text_reply("You have eggs."),
        ])

    An ``Exception`` in the script is raised instead of replying.  When the
    script runs out the last entry repeats, so ``[tool_reply(...)]`` is a
    backend that never stops calling tools.
    """

    def __init__(self, replies: list[ModelReply | Exception], model_name: str = "mock-model") -> None:
        if not replies:
            raise ValueError("ScriptedProvider needs at least one reply")
        self._replies = list(replies)
        self._model_name = model_name
        self.call_count = 0
        self.seen_messages: list[list[Message]] = []
        self.last_tools: list[dict] | None = None

    @property
    def name(self) -> str:
        return self._model_name

    def _next(self, messages: list[Message], tools: list[dict] | None) -> ModelReply:
        idx = min(self.call_count, len(self._replies) - 1)
        self.call_count += 1
        self.seen_messages.append(list(messages))
        self.last_tools = tools
        entry = self._replies[idx]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        timeout: float | None = None,
    ) -> ModelReply:
        return self._next(messages, tools)

    async def chat(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        stream: bool = True,
        timeout: float | None = None,
    ) -> AsyncIterator[StreamChunk]:
        reply = self._next(messages, tools)
        for chunk in reply_to_chunks(reply):
            yield chunk


class UnreachableProvider(ScriptedProvider):
    """A backend whose every call fails with ``ProviderError``."""

    def __init__(self, message: str = "connection refused") -> None:
        super().__init__([ProviderError(message)], model_name="unreachable")


class MidStreamFailureProvider(Provider):
    """Streams some text, then fails as if the connection dropped."""

    def __init__(self, text: str = "Let me check ") -> None:
        self._text = text
        self.call_count = 0

    @property
    def name(self) -> str:
        return "mid-stream-failure"

    async def complete(self, messages, tools=None, timeout=None) -> ModelReply:
        self.call_count += 1
        raise ProviderError("connection reset")

    async def chat(self, messages, tools=None, stream=True, timeout=None):
        self.call_count += 1
        yield StreamChunk(delta=self._text)
        raise ProviderError("connection reset")
