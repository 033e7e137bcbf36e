"""Tests for DeltaAssembler."""

import pytest

from chefmate.llm.delta_assembler import DeltaAssembler
from chefmate.llm.types import RawToolDelta, StreamChunk
from chefmate.orchestrator.events import TokenEvent
from chefmate.types import Usage


def _tool_chunk(**kwargs) -> StreamChunk:
    return StreamChunk(tool_deltas=[RawToolDelta(**kwargs)])


class TestTextAssembly:
    def test_text_deltas_surface_immediately(self):
        asm = DeltaAssembler()
        assert asm.feed(StreamChunk(delta="Hel")) == [TokenEvent(text="Hel")]
        assert asm.feed(StreamChunk(delta="lo")) == [TokenEvent(text="lo")]
        text, calls, reason = asm.finalize()
        assert text == "Hello"
        assert calls == []
        assert reason == "stop"

    def test_empty_chunks_produce_no_events(self):
        asm = DeltaAssembler()
        assert asm.feed(StreamChunk()) == []
        assert asm.feed(StreamChunk(done=True)) == []
        assert asm.finalize() == ("", [], "stop")

    def test_text_and_tool_calls_in_one_response(self):
        asm = DeltaAssembler()
        asm.feed(StreamChunk(delta="Checking. "))
        asm.feed(_tool_chunk(call_index=0, id="c1", name="get_inventory", args_delta="{}"))
        text, calls, reason = asm.finalize()
        assert text == "Checking. "
        assert [c.name for c in calls] == ["get_inventory"]
        assert reason == "tool_calls"


class TestToolCallAssembly:
    def test_fragmented_arguments_concatenate(self):
        asm = DeltaAssembler()
        asm.feed(_tool_chunk(call_index=0, id="call_1", name="search_recipes"))
        asm.feed(_tool_chunk(call_index=0, args_delta='{"que'))
        asm.feed(_tool_chunk(call_index=0, args_delta='ry": "chi'))
        asm.feed(_tool_chunk(call_index=0, args_delta='cken"}'))
        _, [call], _ = asm.finalize()
        assert call.id == "call_1"
        assert call.name == "search_recipes"
        assert call.arguments_text == '{"query": "chicken"}'

    def test_interleaved_indices_come_out_ascending(self):
        asm = DeltaAssembler()
        asm.feed(_tool_chunk(call_index=2, id="c", name="third"))
        asm.feed(_tool_chunk(call_index=0, id="a", name="first"))
        asm.feed(_tool_chunk(call_index=1, id="b", name="second"))
        asm.feed(_tool_chunk(call_index=2, args_delta='{"n": 3}'))
        asm.feed(_tool_chunk(call_index=0, args_delta='{"n": 1}'))
        asm.feed(_tool_chunk(call_index=1, args_delta='{"n": 2}'))
        _, calls, _ = asm.finalize()
        assert [c.name for c in calls] == ["first", "second", "third"]
        assert [c.arguments_text for c in calls] == ['{"n": 1}', '{"n": 2}', '{"n": 3}']

    def test_id_may_arrive_after_empty_first_fragment(self):
        asm = DeltaAssembler()
        asm.feed(_tool_chunk(call_index=0, id="", name="get_meal_plan"))
        asm.feed(_tool_chunk(call_index=0, id="call_late", args_delta="{}"))
        _, [call], _ = asm.finalize()
        assert call.id == "call_late"

    def test_name_and_id_are_set_once(self):
        asm = DeltaAssembler()
        asm.feed(_tool_chunk(call_index=0, id="first_id", name="get_inventory"))
        asm.feed(_tool_chunk(call_index=0, id="other_id", name="get_inventory"))
        _, [call], _ = asm.finalize()
        assert call.id == "first_id"
        assert call.name == "get_inventory"

    def test_missing_id_is_synthesized_from_index(self):
        asm = DeltaAssembler()
        asm.feed(_tool_chunk(call_index=3, name="log_meal", args_delta="{}"))
        _, [call], _ = asm.finalize()
        assert call.id == "call_3"

    def test_arguments_are_not_parsed(self):
        asm = DeltaAssembler()
        asm.feed(_tool_chunk(call_index=0, id="x", name="search_recipes", args_delta='{"query": '))
        _, [call], _ = asm.finalize()
        assert call.arguments_text == '{"query": '


class TestFinalize:
    def test_backend_finish_reason_wins(self):
        asm = DeltaAssembler()
        asm.feed(StreamChunk(delta="cut off"))
        asm.feed(StreamChunk(finish_reason="length"))
        assert asm.finalize()[2] == "length"

    def test_usage_is_remembered(self):
        asm = DeltaAssembler()
        asm.feed(StreamChunk(delta="hi"))
        asm.feed(StreamChunk(usage=Usage(10, 2, 12)))
        asm.finalize()
        assert asm.usage == Usage(10, 2, 12)

    def test_finalize_is_read_once(self):
        asm = DeltaAssembler()
        asm.finalize()
        with pytest.raises(RuntimeError):
            asm.finalize()

    def test_feed_after_finalize_raises(self):
        asm = DeltaAssembler()
        asm.finalize()
        with pytest.raises(RuntimeError):
            asm.feed(StreamChunk(delta="late"))
