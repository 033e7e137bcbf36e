"""
Per-turn conversation state.

A ``ConversationState`` is built once per invocation from the system
prompt, the loaded thread history and the new user message, and is only
ever appended to afterwards.  ``append`` enforces the tool-message rule: a
``tool`` message answers exactly one call of the most recent ``assistant``
message and may only follow that message or a sibling ``tool`` message.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from chefmate.llm.types import Message, Role
from chefmate.types import ConversationError

logger = logging.getLogger(__name__)


class ConversationState:
    """Append-only ordered sequence of ``Message`` objects."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = []
        for msg in messages:
            self.append(msg)

    @classmethod
    def assemble(
        cls,
        *,
        system_prompt: str,
        history: list[Message],
        user_message: str,
    ) -> ConversationState:
        state = cls()
        if system_prompt:
            state.append(Message(role=Role.SYSTEM, content=system_prompt))
        for msg in sanitize_history(history):
            state.append(msg)
        state.append(Message(role=Role.USER, content=user_message))
        return state

    @property
    def messages(self) -> list[Message]:
        """A copy of the messages, oldest first."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def append(self, message: Message) -> None:
        if message.role == Role.TOOL:
            self._check_tool_message(message)
        elif message.tool_call_id:
            raise ConversationError(
                f"Only tool messages may carry a tool_call_id (got role {message.role!r})"
            )
        if message.tool_calls and message.role != Role.ASSISTANT:
            raise ConversationError("Only assistant messages may request tool calls")
        self._messages.append(message)

    def _check_tool_message(self, message: Message) -> None:
        answered: set[str] = set()
        for prior in reversed(self._messages):
            if prior.role == Role.TOOL:
                answered.add(prior.tool_call_id or "")
                continue
            if prior.role == Role.ASSISTANT and prior.tool_calls:
                requested = {tc.id for tc in prior.tool_calls}
                if message.tool_call_id not in requested:
                    raise ConversationError(
                        f"Tool message {message.tool_call_id!r} does not answer "
                        "a call of the preceding assistant message"
                    )
                if message.tool_call_id in answered:
                    raise ConversationError(
                        f"Tool call {message.tool_call_id!r} already answered"
                    )
                return
            break
        raise ConversationError(
            "Tool message must follow an assistant tool-call message or another tool message"
        )


def sanitize_history(history: list[Message]) -> list[Message]:
    """
    Drop history entries that would break the tool-message rule.

    History is loaded with a count limit, so truncation can cut an assistant
    tool-call message off from its results (or the other way round).
    Orphan tool messages are dropped; an assistant message whose calls are not
    all answered loses its ``tool_calls`` (and is dropped if it has no text).
    """
    kept: list[Message] = []
    i = 0
    while i < len(history):
        msg = history[i]
        if msg.role == Role.TOOL:
            logger.debug("Dropping orphan tool message %s", msg.tool_call_id)
            i += 1
            continue

        if msg.role == Role.ASSISTANT and msg.tool_calls:
            j = i + 1
            results: list[Message] = []
            while j < len(history) and history[j].role == Role.TOOL:
                results.append(history[j])
                j += 1
            requested = {tc.id for tc in msg.tool_calls}
            answered = {r.tool_call_id for r in results}
            if requested <= answered:
                kept.append(msg)
                seen: set[str] = set()
                for r in results:
                    if r.tool_call_id in requested and r.tool_call_id not in seen:
                        seen.add(r.tool_call_id)
                        kept.append(r)
            elif msg.content:
                kept.append(Message(role=Role.ASSISTANT, content=msg.content))
            i = j
            continue

        kept.append(msg)
        i += 1
    return kept
