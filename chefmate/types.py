from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ChefmateError(Exception):
    """Base class for errors raised by the chefmate engine."""


class ConversationError(ChefmateError):
    """A message would break the ordering rules of a conversation."""


class ProviderError(ChefmateError):
    """The model backend could not be reached or returned an HTTP error."""


class DeadlineExceeded(ChefmateError, TimeoutError):
    """The caller-supplied deadline passed before the next model or tool call."""


class ErrorCode:
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    TOOL_EXCEPTION = "tool_exception"
    UNKNOWN_TOOL = "unknown_tool"


@dataclass
class ToolResult:
    result: Any = None
    metadata: dict = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error_code: str, message: str) -> ToolResult:
        return cls(result={"error": message}, error=message, error_code=error_code)


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: Usage | None) -> Usage:
        if other is None:
            return self
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @classmethod
    def from_wire(cls, data: dict | None) -> Usage | None:
        if not data:
            return None
        return cls(
            prompt_tokens=int(data.get("prompt_tokens") or 0),
            completion_tokens=int(data.get("completion_tokens") or 0),
            total_tokens=int(data.get("total_tokens") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class ToolExecutionRecord:
    name: str
    arguments: dict
    result: Any
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "args": self.arguments,
            "result": self.result,
            "metadata": self.metadata,
        }


@dataclass
class OrchestrationResult:
    """
    The outward-facing outcome of one conversational turn.

    Produced identically by the model-driven loop and the fallback
    responder; nothing in the shape tells the two apart.
    """

    content: str
    tool_calls: list[ToolExecutionRecord] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    usage: Usage | None = None

    @classmethod
    def from_records(
        cls,
        content: str,
        records: list[ToolExecutionRecord],
        usage: Usage | None = None,
    ) -> OrchestrationResult:
        merged: dict = {}
        for record in records:
            merged.update(record.metadata)
        return cls(content=content, tool_calls=list(records), metadata=merged, usage=usage)

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "toolCalls": [r.to_dict() for r in self.tool_calls],
            "metadata": self.metadata,
            "usage": self.usage.to_dict() if self.usage else None,
        }
