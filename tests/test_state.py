"""Tests for ConversationState and history sanitizing."""

import pytest

from chefmate.llm.types import Message, Role, ToolCallRef
from chefmate.orchestrator.state import ConversationState, sanitize_history
from chefmate.types import ConversationError


def _assistant_calls(*ids: str) -> Message:
    return Message(
        role=Role.ASSISTANT,
        content=None,
        tool_calls=[ToolCallRef(id=i, name="get_inventory", arguments_text="{}") for i in ids],
    )


def _tool(call_id: str) -> Message:
    return Message(role=Role.TOOL, content="{}", tool_call_id=call_id)


class TestAssemble:
    def test_order_is_system_history_user(self):
        history = [
            Message(role=Role.USER, content="hi"),
            Message(role=Role.ASSISTANT, content="hello"),
        ]
        state = ConversationState.assemble(
            system_prompt="be helpful", history=history, user_message="what's for dinner?"
        )
        roles = [m.role for m in state]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER]
        assert state.messages[-1].content == "what's for dinner?"

    def test_empty_system_prompt_is_omitted(self):
        state = ConversationState.assemble(system_prompt="", history=[], user_message="x")
        assert [m.role for m in state] == [Role.USER]

    def test_messages_returns_copy(self):
        state = ConversationState.assemble(system_prompt="s", history=[], user_message="x")
        state.messages.append(Message(role=Role.USER, content="sneaky"))
        assert len(state) == 2


class TestToolMessageRule:
    def test_tool_results_follow_their_assistant_message(self):
        state = ConversationState([Message(role=Role.USER, content="q")])
        state.append(_assistant_calls("a", "b"))
        state.append(_tool("a"))
        state.append(_tool("b"))
        assert len(state) == 4

    def test_tool_message_without_assistant_is_rejected(self):
        state = ConversationState([Message(role=Role.USER, content="q")])
        with pytest.raises(ConversationError):
            state.append(_tool("a"))

    def test_tool_message_for_unknown_call_is_rejected(self):
        state = ConversationState([_assistant_calls("a")])
        with pytest.raises(ConversationError, match="does not answer"):
            state.append(_tool("zzz"))

    def test_duplicate_tool_result_is_rejected(self):
        state = ConversationState([_assistant_calls("a", "b"), _tool("a")])
        with pytest.raises(ConversationError, match="already answered"):
            state.append(_tool("a"))

    def test_tool_call_id_on_user_message_is_rejected(self):
        state = ConversationState()
        with pytest.raises(ConversationError):
            state.append(Message(role=Role.USER, content="q", tool_call_id="a"))

    def test_tool_calls_on_user_message_are_rejected(self):
        state = ConversationState()
        with pytest.raises(ConversationError):
            state.append(
                Message(role=Role.USER, content="q", tool_calls=[ToolCallRef("a", "x")])
            )


class TestSanitizeHistory:
    def test_orphan_tool_messages_dropped(self):
        history = [_tool("a"), Message(role=Role.USER, content="hi")]
        assert [m.role for m in sanitize_history(history)] == [Role.USER]

    def test_complete_exchange_kept(self):
        history = [_assistant_calls("a"), _tool("a")]
        assert sanitize_history(history) == history

    def test_unanswered_calls_stripped(self):
        msg = _assistant_calls("a", "b")
        msg.content = "Let me look."
        cleaned = sanitize_history([msg, _tool("a")])
        assert len(cleaned) == 1
        assert cleaned[0].tool_calls is None
        assert cleaned[0].content == "Let me look."

    def test_unanswered_calls_without_text_dropped(self):
        assert sanitize_history([_assistant_calls("a")]) == []

    def test_sanitized_history_is_appendable(self):
        history = [_tool("x"), _assistant_calls("a"), _tool("a"), _tool("a")]
        state = ConversationState.assemble(system_prompt="s", history=history, user_message="q")
        assert [m.role for m in state] == [Role.SYSTEM, Role.ASSISTANT, Role.TOOL, Role.USER]
