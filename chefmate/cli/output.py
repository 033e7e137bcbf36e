"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from chefmate.tools.base import Tool
from chefmate.types import OrchestrationResult

ROLE_COLORS = {
    "user": "blue",
    "assistant": "green",
}


def preview(value: Any, limit: int = 80) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    return text if len(text) <= limit else text[: limit - 3] + "..."


class OutputFormatter:
    """Rich-based output formatting for the chefmate CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_tool_list(self, tools: list[Tool]) -> None:
        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Required", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            required = t.parameters.get("required") or []
            table.add_row(t.name, ", ".join(required) or "-", t.description)

        self.console.print(table)

    def format_tool_info(self, tool: Tool) -> None:
        props = tool.parameters.get("properties") or {}
        self.console.print(Panel(
            f"[bold]{tool.name}[/bold]\n\n"
            f"[dim]Parameters:[/dim] {', '.join(props) or 'none'}\n\n"
            f"{tool.description}",
            title=f"Tool: {tool.name}",
        ))
        schema_json = json.dumps(tool.to_openai_schema(), indent=2)
        self.console.print(Syntax(schema_json, "json", theme="monokai"))

    def format_thread_list(self, threads: list[dict]) -> None:
        if not threads:
            self.console.print("[dim]No threads found.[/dim]")
            return

        table = Table(title="Threads")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("Messages", justify="right")
        table.add_column("Updated", no_wrap=True)

        for t in threads:
            table.add_row(
                t.get("thread_id", "?"),
                t.get("title", "?"),
                str(t.get("message_count", 0)),
                t.get("updated_at", "?"),
            )

        self.console.print(table)

    def format_thread_messages(self, messages: list[dict]) -> None:
        if not messages:
            self.console.print("[dim]No messages.[/dim]")
            return

        for msg in messages:
            role = msg.get("role", "?")
            color = ROLE_COLORS.get(role, "white")
            self.console.print(Text(f"{role:>9s}: ", style=color), end="")
            self.console.print(msg.get("content", ""), markup=False)
            for call in (msg.get("context") or {}).get("toolCalls", []):
                self.console.print(
                    f"           [dim]tool {call.get('name', '?')}"
                    f"({preview(call.get('args', {}))})[/dim]"
                )

    def format_result(self, result: OrchestrationResult) -> None:
        self.console.print(Panel(Text(result.content), title="ChefMate"))
        if result.tool_calls:
            table = Table(title="Tool Calls")
            table.add_column("Tool", style="cyan", no_wrap=True)
            table.add_column("Arguments")
            table.add_column("Result")
            for record in result.tool_calls:
                table.add_row(record.name, preview(record.arguments), preview(record.result))
            self.console.print(table)
        if result.usage is not None:
            self.console.print(
                f"[dim]tokens: {result.usage.prompt_tokens} in / "
                f"{result.usage.completion_tokens} out[/dim]"
            )

    def format_config(self, config: dict) -> None:
        config_json = json.dumps(config, indent=2, default=str)
        self.console.print(Syntax(config_json, "json", theme="monokai"))
