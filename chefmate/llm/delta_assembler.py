"""
Reassembles streamed model output into finished text and tool calls.

Text fragments are surfaced immediately as ``TokenEvent`` objects and
collected into a running buffer.  Tool-call fragments are accumulated in a
map keyed by ``call_index``; each slot has a set-once name and id and an
append-only argument string.  ``finalize()`` reads the map once, in ascending
index order, and never tries to parse the argument text -- malformed payloads
are the round controller's problem.
"""

from __future__ import annotations

from chefmate.llm.types import RawToolDelta, StreamChunk, ToolCallRef
from chefmate.orchestrator.events import StreamEvent, TokenEvent
from chefmate.types import Usage


class DeltaAssembler:
    """Buffers streamed chunks and produces complete text and ``ToolCallRef``s."""

    def __init__(self) -> None:
        self._text: list[str] = []
        self._buf: dict[int, dict] = {}
        self._finish_reason: str | None = None
        self._finalized = False
        self.usage: Usage | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, chunk: StreamChunk) -> list[StreamEvent]:
        """
        Feed one ``StreamChunk`` into the assembler.

        Returns the events that can be emitted right away (zero or one
        ``TokenEvent``).
        """
        if self._finalized:
            raise RuntimeError("DeltaAssembler already finalized")

        events: list[StreamEvent] = []
        if chunk.delta:
            self._text.append(chunk.delta)
            events.append(TokenEvent(text=chunk.delta))

        for delta in chunk.tool_deltas or ():
            self._accumulate(delta)

        if chunk.finish_reason:
            self._finish_reason = chunk.finish_reason
        if chunk.usage is not None:
            self.usage = chunk.usage

        return events

    def finalize(self) -> tuple[str, list[ToolCallRef], str]:
        """
        Return ``(text, tool_calls, termination_reason)``.

        Tool calls come out in ascending ``call_index`` order regardless of
        the order their fragments arrived in.
        """
        if self._finalized:
            raise RuntimeError("DeltaAssembler already finalized")
        self._finalized = True

        calls: list[ToolCallRef] = []
        for idx in sorted(self._buf):
            buf = self._buf[idx]
            calls.append(
                ToolCallRef(
                    id=buf["id"] or f"call_{idx}",
                    name=buf["name"].strip(),
                    arguments_text=buf["args"],
                )
            )

        reason = self._finish_reason or ("tool_calls" if calls else "stop")
        return "".join(self._text), calls, reason

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accumulate(self, delta: RawToolDelta) -> None:
        buf = self._buf.setdefault(
            delta.call_index, {"id": "", "name": "", "args": ""}
        )
        if delta.id and not buf["id"]:
            buf["id"] = delta.id
        if delta.name and not buf["name"]:
            buf["name"] = delta.name
        if delta.args_delta:
            buf["args"] += delta.args_delta
