"""Interactive chat session handler."""

from __future__ import annotations

import asyncio

from rich.console import Console

from chefmate.cli.output import OutputFormatter, preview
from chefmate.orchestrator.core import Orchestrator
from chefmate.orchestrator.events import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TokenEvent,
    ToolCallStartedEvent,
    ToolResultEvent,
)
from chefmate.store.threads import ThreadStore
from chefmate.types import OrchestrationResult


class ChatHandler:
    """
    Manages the interactive chat loop.

    Renders stream events as they arrive and persists every finished turn
    to the thread store.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        store: ThreadStore,
        *,
        user_id: str,
        thread_id: str,
        console: Console | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self.user_id = user_id
        self.thread_id = thread_id
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self._running = True

    async def render_event(self, event: StreamEvent) -> None:
        if isinstance(event, TokenEvent):
            self.console.print(event.text, end="", markup=False, highlight=False)
        elif isinstance(event, ToolCallStartedEvent):
            self.console.print(
                f"\n  [yellow]tool[/yellow] {event.name}({preview(event.arguments)})"
            )
        elif isinstance(event, ToolResultEvent):
            failed = isinstance(event.result, dict) and "error" in event.result
            status = "[red]FAILED[/red]" if failed else "[green]OK[/green]"
            self.console.print(f"  [{event.name}] {status}")
        elif isinstance(event, ErrorEvent):
            self.console.print(f"\n[red]Error:[/red] {event.message}")
        elif isinstance(event, DoneEvent):
            self.console.print()

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        cmd = command.strip().split(None, 1)[0].lower()

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/history":
            messages = await self.store.get_messages(self.thread_id)
            self.formatter.format_thread_messages(messages)
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.orchestrator.registry.list())
            return True

        if cmd == "/new":
            self.thread_id = await self.store.create_thread(self.user_id)
            self.console.print(f"  Started thread [cyan]{self.thread_id}[/cyan]")
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit     - Exit the chat\n"
                "  /history  - Show this thread's messages\n"
                "  /tools    - List available tools\n"
                "  /new      - Start a new thread\n"
                "  /help     - Show this help\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> OrchestrationResult | None:
        """Run one turn through the orchestrator, streaming it to the console."""
        try:
            result = await self.orchestrator.converse_streaming(
                user_input, self.user_id, self.thread_id, self.render_event
            )
        except Exception as e:
            self.console.print(f"\n[red]Error:[/red] {e}")
            return None

        await self.store.record_exchange(self.thread_id, self.user_id, user_input, result)
        return result

    async def run_loop(self) -> None:
        """Main interactive loop."""
        mode = "" if self.orchestrator.model_configured else " [yellow](basic mode)[/yellow]"
        self.console.print(
            f"[bold]ChefMate[/bold] - Kitchen Assistant{mode}\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        loop = asyncio.get_running_loop()
        while self._running:
            try:
                user_input = await loop.run_in_executor(None, lambda: input("you> ").strip())
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                if await self.handle_command(user_input):
                    continue

            self.console.print("[dim]chefmate>[/dim] ", end="")
            await self.handle_input(user_input)
