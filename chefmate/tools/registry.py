from __future__ import annotations

import asyncio
import logging
from importlib.metadata import entry_points

from chefmate.tools.base import Tool
from chefmate.tools.validation import ToolValidator
from chefmate.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Fixed mapping from tool name to tool, filled once at startup.

    ``execute`` is the single dispatch point used by both the round
    controller and the fallback responder.  It never raises for an unknown
    tool, invalid arguments, an executor exception or a timeout; each of
    those comes back as an error-shaped ``ToolResult``.
    """

    def __init__(self, tool_timeout: float = 30.0):
        self._tools: dict[str, Tool] = {}
        self.tool_timeout = tool_timeout

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise KeyError(name)
        return t

    def list(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def list_schemas(self) -> list[dict]:
        return [t.to_openai_schema() for t in self.list()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, arguments: dict, user_id: str) -> ToolResult:
        tool = self.get(name)
        if tool is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResult.failure(ErrorCode.UNKNOWN_TOOL, f"Unknown tool: {name}")

        valid, error_msg = ToolValidator.validate(tool, arguments)
        if not valid:
            logger.warning("Invalid arguments for %s: %s", name, error_msg)
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR, f"Invalid arguments for {name}: {error_msg}"
            )

        try:
            outcome = await asyncio.wait_for(
                tool.execute(arguments, user_id=user_id),
                timeout=self.tool_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %ss", name, self.tool_timeout)
            return ToolResult.failure(
                ErrorCode.TIMEOUT, f"{name} timed out after {self.tool_timeout}s"
            )
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return ToolResult.failure(ErrorCode.TOOL_EXCEPTION, f"{name} failed: {e}")

        if not isinstance(outcome, ToolResult):
            outcome = ToolResult(result=outcome)
        return outcome

    def load_plugins(
        self,
        *,
        enabled: bool,
        group: str = "chefmate.tools",
        allow_distributions: set[str] | None = None,
        allow_tools: set[str] | None = None,
    ) -> int:
        """Register tools published under the ``chefmate.tools`` entry-point group."""
        if not enabled:
            return 0
        loaded = 0
        for ep in entry_points(group=group):
            dist = getattr(ep, "dist", None)
            dist_name = getattr(dist, "name", None)
            if allow_distributions and dist_name and dist_name not in allow_distributions:
                continue
            if allow_tools and ep.name not in allow_tools:
                continue
            tool_cls = ep.load()
            self.register(tool_cls())
            loaded += 1
        logger.info("Loaded %d plugin tool(s) from %s", loaded, group)
        return loaded
