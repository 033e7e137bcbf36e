"""
Orchestrator core -- one conversational turn from user text to final answer.

For every turn the orchestrator:
1. Loads preferences, inventory summary and thread history (once)
2. Builds the system prompt and the conversation state
3. Runs the round controller against the model backend, or the
   fallback responder when no backend is configured or reachable
4. Returns an ``OrchestrationResult``; the streaming variant also pushes
   events to a sink as they happen and finishes with ``DoneEvent``

The orchestrator never writes anything back; persisting the exchange is up
to the caller.
"""

from __future__ import annotations

import asyncio
import logging

from chefmate.llm.providers.base import Provider
from chefmate.orchestrator.context import ContextLoader, load_turn_context
from chefmate.orchestrator.events import DoneEvent, ErrorEvent, EventSink, TokenEvent
from chefmate.orchestrator.fallback import FallbackResponder
from chefmate.orchestrator.rounds import (
    MAX_ROUNDS,
    RoundController,
    StreamingRoundController,
)
from chefmate.orchestrator.state import ConversationState
from chefmate.prompts.system import build_system_prompt
from chefmate.tools.registry import ToolRegistry
from chefmate.types import OrchestrationResult, ProviderError

logger = logging.getLogger(__name__)

STREAM_FAILED_MESSAGE = "Stream failed"


class Orchestrator:
    """
    Entry point for conversational turns.

    Parameters
    ----------
    registry : ToolRegistry
        Registered tools, read-only once turns start.
    context_loader : ContextLoader
        Source of preferences, inventory summary and thread history.
    backend : Provider | None
        Model backend.  ``None`` means unconfigured: every turn goes to the
        fallback responder.
    max_rounds : int
        Model calls allowed per turn.
    history_limit : int
        Number of prior thread messages loaded into the conversation.
    request_timeout : float | None
        Per-request timeout handed to the backend.
    fallback : FallbackResponder | None
        Defaults to a responder with the standard intent cascade.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        context_loader: ContextLoader,
        backend: Provider | None = None,
        *,
        max_rounds: int = MAX_ROUNDS,
        history_limit: int = 20,
        request_timeout: float | None = None,
        fallback: FallbackResponder | None = None,
    ) -> None:
        self.registry = registry
        self.context_loader = context_loader
        self.backend = backend
        self.max_rounds = max_rounds
        self.history_limit = history_limit
        self.request_timeout = request_timeout
        self.fallback = fallback or FallbackResponder(registry)

    @property
    def model_configured(self) -> bool:
        return self.backend is not None

    async def converse(
        self,
        message: str,
        user_id: str,
        thread_id: str,
        *,
        deadline: float | None = None,
    ) -> OrchestrationResult:
        """
        Run one turn and return its result.

        *deadline* is an absolute ``time.monotonic()`` value; it is checked
        before each model call and each tool call.
        """
        state = await self._prepare(message, user_id, thread_id)
        if self.backend is None:
            return await self.fallback.respond(message, user_id)

        controller = RoundController(
            self.backend,
            max_rounds=self.max_rounds,
            deadline=deadline,
            timeout=self.request_timeout,
        )
        try:
            return await controller.run(state, self.registry, user_id=user_id)
        except ProviderError as exc:
            if controller.records:
                raise
            logger.warning("Model backend unavailable, using fallback: %s", exc)
            return await self.fallback.respond(message, user_id)

    async def converse_streaming(
        self,
        message: str,
        user_id: str,
        thread_id: str,
        event_sink: EventSink,
        *,
        deadline: float | None = None,
    ) -> OrchestrationResult:
        """
        Run one turn, delivering events to *event_sink* in order.

        Text arrives as ``TokenEvent``s while the model produces it, tool
        executions are bracketed by ``ToolCallStartedEvent`` and
        ``ToolResultEvent``, and the turn ends with ``DoneEvent``.  On
        failure one ``ErrorEvent`` is attempted and the exception propagates.
        """
        try:
            state = await self._prepare(message, user_id, thread_id)
            if self.backend is None:
                result = await self._stream_fallback(message, user_id, event_sink)
            else:
                controller = StreamingRoundController(
                    self.backend,
                    event_sink,
                    max_rounds=self.max_rounds,
                    deadline=deadline,
                    timeout=self.request_timeout,
                )
                try:
                    result = await controller.run(state, self.registry, user_id=user_id)
                except ProviderError as exc:
                    if controller.records or controller.events_emitted:
                        raise
                    logger.warning("Model backend unavailable, using fallback: %s", exc)
                    result = await self._stream_fallback(message, user_id, event_sink)
            await event_sink(DoneEvent(result=result))
        except asyncio.CancelledError:
            logger.info("Streaming turn cancelled (thread %s)", thread_id)
            raise
        except Exception:
            logger.exception("Streaming turn failed (thread %s)", thread_id)
            await self._emit_failure(event_sink)
            raise
        return result

    async def _prepare(
        self, message: str, user_id: str, thread_id: str
    ) -> ConversationState:
        context = await load_turn_context(
            self.context_loader, user_id, thread_id, self.history_limit
        )
        system_prompt = build_system_prompt(
            preferences=context.preferences,
            inventory_summary=context.inventory_summary,
            tools=self.registry.list(),
        )
        return ConversationState.assemble(
            system_prompt=system_prompt,
            history=context.history,
            user_message=message,
        )

    async def _stream_fallback(
        self, message: str, user_id: str, event_sink: EventSink
    ) -> OrchestrationResult:
        result = await self.fallback.respond(message, user_id)
        await event_sink(TokenEvent(text=result.content))
        return result

    async def _emit_failure(self, event_sink: EventSink) -> None:
        try:
            await event_sink(ErrorEvent(message=STREAM_FAILED_MESSAGE))
        except Exception:
            logger.exception("Could not deliver error event")
