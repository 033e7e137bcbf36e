"""
Round controller -- the bounded ask-the-model / run-the-tools loop.

Each round sends the whole conversation plus the tool schemas to the model
backend.  A reply without tool calls ends the turn.  A reply with tool calls
is appended to the conversation, every requested call is executed in the
order received, and each result goes back in as a ``tool`` message before
the next round starts.  After ``max_rounds`` model calls the loop stops and
returns whatever was collected.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from chefmate.llm.delta_assembler import DeltaAssembler
from chefmate.llm.providers.base import Provider
from chefmate.llm.types import Message, ModelReply, Role, ToolCallRef
from chefmate.orchestrator.events import (
    EventSink,
    StreamEvent,
    TokenEvent,
    ToolCallStartedEvent,
    ToolResultEvent,
)
from chefmate.orchestrator.state import ConversationState
from chefmate.tools.registry import ToolRegistry
from chefmate.types import (
    DeadlineExceeded,
    OrchestrationResult,
    ToolExecutionRecord,
    Usage,
)

logger = logging.getLogger(__name__)

MAX_ROUNDS = 5

ROUND_LIMIT_MESSAGE = (
    "I've done as much as I can for this request in one go. "
    "Here's what I found so far; let me know if you'd like me to keep going."
)

EMPTY_REPLY_MESSAGE = (
    "I'm sorry, I couldn't come up with an answer to that. Could you rephrase it?"
)


def decode_arguments(arguments_text: str) -> tuple[dict, str | None]:
    """
    Decode a tool call's argument text into a mapping.

    Returns ``(arguments, error)``.  Anything that is not a JSON object
    decodes to ``{}`` with an error description.
    """
    if not arguments_text or not arguments_text.strip():
        return {}, None
    try:
        value = json.loads(arguments_text)
    except (json.JSONDecodeError, ValueError) as exc:
        return {}, f"invalid JSON: {exc}"
    if not isinstance(value, dict):
        return {}, f"expected a JSON object, got {type(value).__name__}"
    return value, None


def encode_tool_result(result: Any) -> str:
    return json.dumps(result, default=str)


def unique_call_ids(calls: list[ToolCallRef]) -> list[ToolCallRef]:
    """
    Give every call in one reply a distinct id.

    Backends sometimes repeat an id (or send none) across calls of a single
    reply.  A repeated id is re-keyed to ``"<id>_<position>"`` so that each
    ``tool`` message answers exactly one call.
    """
    seen: set[str] = set()
    out: list[ToolCallRef] = []
    for idx, call in enumerate(calls):
        call_id = call.id or f"call_{idx}"
        if call_id in seen:
            base, n = call_id, idx
            call_id = f"{base}_{n}"
            while call_id in seen:
                n += 1
                call_id = f"{base}_{n}"
            logger.warning(
                "Repeated tool call id %r for %s; using %r", call.id, call.name, call_id
            )
        seen.add(call_id)
        out.append(
            call
            if call_id == call.id
            else ToolCallRef(id=call_id, name=call.name, arguments_text=call.arguments_text)
        )
    return out


class RoundController:
    """
    Drives at most ``max_rounds`` request/execute cycles for one turn.

    Parameters
    ----------
    backend : Provider
        Model backend handle.
    max_rounds : int
        Maximum number of model calls for the turn.
    deadline : float | None
        Absolute ``time.monotonic()`` value.  Checked before every model call
        and every tool call; never interrupts a running tool.
    timeout : float | None
        Per-request timeout passed to the backend.
    """

    def __init__(
        self,
        backend: Provider,
        *,
        max_rounds: int = MAX_ROUNDS,
        deadline: float | None = None,
        timeout: float | None = None,
    ) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.backend = backend
        self.max_rounds = max_rounds
        self.deadline = deadline
        self.timeout = timeout
        self.records: list[ToolExecutionRecord] = []
        self.model_calls = 0
        self.events_emitted = 0

    async def run(
        self,
        state: ConversationState,
        registry: ToolRegistry,
        *,
        user_id: str,
    ) -> OrchestrationResult:
        tools_schema = registry.list_schemas()
        usage: Usage | None = None

        for round_no in range(1, self.max_rounds + 1):
            self._check_deadline("model call")
            self.model_calls += 1
            reply = await self._ask_model(state, tools_schema)
            if reply.usage is not None:
                usage = reply.usage + usage

            if not reply.tool_calls:
                content = reply.content
                if not content:
                    logger.warning(
                        "Model returned neither text nor tool calls (round %d, finish=%s)",
                        round_no,
                        reply.finish_reason,
                    )
                    content = EMPTY_REPLY_MESSAGE
                    await self._emit(TokenEvent(text=content))
                return OrchestrationResult.from_records(content, self.records, usage)

            calls = unique_call_ids(reply.tool_calls)
            state.append(
                Message(
                    role=Role.ASSISTANT,
                    content=reply.content or None,
                    tool_calls=calls,
                )
            )

            for call in calls:
                self._check_deadline("tool call")
                record = await self._execute(call, registry, user_id)
                state.append(
                    Message(
                        role=Role.TOOL,
                        content=encode_tool_result(record.result),
                        tool_call_id=call.id,
                    )
                )
                self.records.append(record)

        logger.warning(
            "Round limit of %d reached with %d tool call(s) executed",
            self.max_rounds,
            len(self.records),
        )
        await self._emit(TokenEvent(text=ROUND_LIMIT_MESSAGE))
        return OrchestrationResult.from_records(ROUND_LIMIT_MESSAGE, self.records, usage)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def _ask_model(
        self, state: ConversationState, tools_schema: list[dict]
    ) -> ModelReply:
        return await self.backend.complete(
            state.messages,
            tools=tools_schema or None,
            timeout=self.timeout,
        )

    async def _emit(self, event: StreamEvent) -> None:
        """Non-streaming turns have nobody to tell."""

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute(
        self, call: ToolCallRef, registry: ToolRegistry, user_id: str
    ) -> ToolExecutionRecord:
        arguments, error = decode_arguments(call.arguments_text)
        if error:
            logger.warning(
                "Malformed arguments for %s (%s): %s; using {}",
                call.name,
                call.id,
                error,
            )

        await self._emit(ToolCallStartedEvent(name=call.name, arguments=arguments))
        outcome = await registry.execute(call.name, arguments, user_id)
        if not outcome.success:
            logger.warning("Tool %s returned an error: %s", call.name, outcome.error)
        await self._emit(ToolResultEvent(name=call.name, result=outcome.result))

        return ToolExecutionRecord(
            name=call.name,
            arguments=arguments,
            result=outcome.result,
            metadata=dict(outcome.metadata),
        )

    def _check_deadline(self, before: str) -> None:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DeadlineExceeded(f"Deadline passed before {before}")


class StreamingRoundController(RoundController):
    """
    Round controller that streams each model call through a ``DeltaAssembler``
    and forwards events to *event_sink* as they happen.
    """

    def __init__(
        self,
        backend: Provider,
        event_sink: EventSink,
        *,
        max_rounds: int = MAX_ROUNDS,
        deadline: float | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(
            backend, max_rounds=max_rounds, deadline=deadline, timeout=timeout
        )
        self.event_sink = event_sink

    async def _ask_model(
        self, state: ConversationState, tools_schema: list[dict]
    ) -> ModelReply:
        assembler = DeltaAssembler()
        async for chunk in self.backend.chat(
            state.messages,
            tools=tools_schema or None,
            stream=True,
            timeout=self.timeout,
        ):
            for event in assembler.feed(chunk):
                await self._emit(event)
        text, calls, reason = assembler.finalize()
        return ModelReply(
            content=text,
            tool_calls=calls,
            usage=assembler.usage,
            finish_reason=reason,
        )

    async def _emit(self, event: StreamEvent) -> None:
        self.events_emitted += 1
        await self.event_sink(event)
