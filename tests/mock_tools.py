"""Mock tool implementations for testing."""

import asyncio

from chefmate.tools.base import Tool
from chefmate.types import ToolResult


class EchoTool(Tool):
    """Returns its arguments and remembers every call."""

    def __init__(self, name: str = "echo", log: list | None = None) -> None:
        self._name = name
        self.calls: list[dict] = []
        self.log = log if log is not None else []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Echoes the arguments back."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"},
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        self.calls.append(dict(arguments))
        self.log.append(self._name)
        return ToolResult(
            result={"echo": arguments, "user": user_id},
            metadata={"source": self._name},
        )


class StrictTool(Tool):
    @property
    def name(self) -> str:
        return "strict"

    @property
    def description(self) -> str:
        return "Requires an integer count."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "count": {"type": "integer", "minimum": 1},
            },
            "required": ["count"],
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        return ToolResult(result={"count": arguments["count"]})


class FailingTool(Tool):
    """Raises from ``execute``."""

    def __init__(self, log: list | None = None) -> None:
        self.log = log if log is not None else []

    @property
    def name(self) -> str:
        return "explode"

    @property
    def description(self) -> str:
        return "Always fails."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        self.log.append(self.name)
        raise RuntimeError("kaboom")


class SlowTool(Tool):
    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay

    @property
    def name(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Sleeps before answering."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        await asyncio.sleep(self.delay)
        return ToolResult(result={"slept": self.delay})


class PlainValueTool(Tool):
    """Returns a bare value instead of a ``ToolResult``."""

    @property
    def name(self) -> str:
        return "plain"

    @property
    def description(self) -> str:
        return "Returns a plain dict."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        return {"value": 42}  # type: ignore[return-value]
