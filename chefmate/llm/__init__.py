"""LLM subsystem -- providers, wire types, and streaming delta assembly."""

from chefmate.llm.types import (
    Message,
    ModelReply,
    RawToolDelta,
    Role,
    StreamChunk,
    ToolCallRef,
)
from chefmate.llm.delta_assembler import DeltaAssembler

__all__ = [
    "DeltaAssembler",
    "Message",
    "ModelReply",
    "RawToolDelta",
    "Role",
    "StreamChunk",
    "ToolCallRef",
]
