from __future__ import annotations

from abc import ABC, abstractmethod

from chefmate.types import ToolResult


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    s.setdefault("additionalProperties", False)
    return s


class Tool(ABC):
    """
    A named, schema-described operation the model may ask to run.

    ``execute`` receives the decoded argument mapping and the id of the user
    the turn belongs to, and returns a ``ToolResult`` whose ``result`` is fed
    back to the model verbatim (JSON-encoded).
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @abstractmethod
    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult: ...

    def to_openai_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": normalize_schema(self.parameters),
            },
        }
