"""
Main CLI application for chefmate-core.

Usage:
    chefmate chat [--thread ID] [--user ID] [--profile NAME]
    chefmate ask MESSAGE [--json] [--stream] [--thread ID]
    chefmate threads list|show|delete
    chefmate tools list|info
    chefmate config show|validate
    chefmate version
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from chefmate.config import ChefmateConfig, build_provider, load_config

app = typer.Typer(name="chefmate", help="ChefMate - Kitchen Assistant CLI")
threads_app = typer.Typer(help="Conversation thread management")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(threads_app, name="threads")
app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()

DEFAULT_USER = "local"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "chefmate.yaml",
        Path.cwd() / "chefmate.yml",
        Path.home() / ".config" / "chefmate" / "config.yaml",
        Path.home() / ".chefmate" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _load(profile: str | None = None) -> ChefmateConfig:
    try:
        return load_config(_get_config_path(), profile=profile)
    except (KeyError, ValueError, OSError) as e:
        console.print(f"[red]Could not load config:[/red] {e}")
        raise typer.Exit(1)


def _configure_logging(cfg: ChefmateConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, cfg.logging.level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_registry(cfg: ChefmateConfig):
    from chefmate.kitchen import DemoKitchen, register_kitchen_tools
    from chefmate.tools.registry import ToolRegistry

    kitchen = DemoKitchen()
    registry = ToolRegistry(tool_timeout=cfg.orchestrator.tool_timeout_seconds)
    register_kitchen_tools(registry, kitchen)
    registry.load_plugins(
        enabled=cfg.plugins.enabled,
        allow_distributions=set(cfg.plugins.allow_distributions) if cfg.plugins.allow_distributions else None,
        allow_tools=set(cfg.plugins.allow_tools) if cfg.plugins.allow_tools else None,
    )
    return registry, kitchen


async def _setup_stack(cfg: ChefmateConfig):
    """Wire up store, tools, backend and orchestrator."""
    from chefmate.orchestrator.core import Orchestrator
    from chefmate.store import StoreContextLoader, ThreadStore

    store = ThreadStore(cfg.store.threads_db)
    await store.init()

    registry, kitchen = _build_registry(cfg)
    backend = build_provider(cfg)
    if backend is None:
        logging.getLogger(__name__).info("No model backend configured, using basic mode")

    orchestrator = Orchestrator(
        registry,
        StoreContextLoader(store, kitchen),
        backend,
        max_rounds=cfg.orchestrator.max_rounds,
        history_limit=cfg.orchestrator.history_limit,
        request_timeout=float(cfg.llm.timeout_seconds),
    )
    return orchestrator, store


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    thread: Optional[str] = typer.Option(None, "--thread", help="Resume thread ID"),
    user: str = typer.Option(DEFAULT_USER, "--user", help="User ID"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Start an interactive chat session."""
    from chefmate.cli.chat import ChatHandler

    cfg = _load(profile)
    _configure_logging(cfg, verbose)

    async def _run():
        orchestrator, store = await _setup_stack(cfg)
        try:
            thread_id = thread
            if thread_id is None or await store.get_thread(thread_id) is None:
                thread_id = await store.create_thread(user)
            handler = ChatHandler(
                orchestrator, store, user_id=user, thread_id=thread_id, console=console
            )
            await handler.run_loop()
        finally:
            await store.close()

    asyncio.run(_run())


@app.command()
def ask(
    message: str = typer.Argument(..., help="Message to send"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    stream: bool = typer.Option(False, "--stream", help="Stream the answer as it is produced"),
    thread: Optional[str] = typer.Option(None, "--thread", help="Thread ID to continue and save to"),
    user: str = typer.Option(DEFAULT_USER, "--user", help="User ID"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Ask a single question and print the answer."""
    from chefmate.cli.chat import ChatHandler
    from chefmate.cli.output import OutputFormatter

    cfg = _load(profile)
    _configure_logging(cfg, verbose)

    async def _run():
        orchestrator, store = await _setup_stack(cfg)
        try:
            thread_id = thread or "ask"
            if stream and not as_json:
                handler = ChatHandler(
                    orchestrator, store, user_id=user, thread_id=thread_id, console=console
                )
                result = await orchestrator.converse_streaming(
                    message, user, thread_id, handler.render_event
                )
            else:
                result = await orchestrator.converse(message, user, thread_id)
            if thread:
                await store.record_exchange(thread, user, message, result)
            return result
        finally:
            await store.close()

    try:
        result = asyncio.run(_run())
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), default=str))
    elif not stream:
        OutputFormatter(console).format_result(result)


@threads_app.command("list")
def threads_list(
    user: Optional[str] = typer.Option(None, "--user", help="Only this user's threads"),
):
    """List conversation threads."""

    async def _run():
        from chefmate.cli.output import OutputFormatter
        from chefmate.store import ThreadStore

        cfg = _load()
        store = ThreadStore(cfg.store.threads_db)
        await store.init()
        try:
            threads = await store.list_threads(user)
        finally:
            await store.close()
        OutputFormatter(console).format_thread_list(threads)

    asyncio.run(_run())


@threads_app.command("show")
def threads_show(thread_id: str = typer.Argument(..., help="Thread ID")):
    """Show a thread's messages."""

    async def _run():
        from chefmate.cli.output import OutputFormatter
        from chefmate.store import ThreadStore

        cfg = _load()
        store = ThreadStore(cfg.store.threads_db)
        await store.init()
        try:
            thread = await store.get_thread(thread_id)
            messages = await store.get_messages(thread_id) if thread else []
        finally:
            await store.close()
        if thread is None:
            console.print(f"[red]Thread not found:[/red] {thread_id}")
            raise typer.Exit(1)
        console.print(f"[bold]{thread['title']}[/bold] [dim]({thread_id})[/dim]")
        OutputFormatter(console).format_thread_messages(messages)

    asyncio.run(_run())


@threads_app.command("delete")
def threads_delete(thread_id: str = typer.Argument(..., help="Thread ID")):
    """Delete a thread."""

    async def _run():
        from chefmate.store import ThreadStore

        cfg = _load()
        store = ThreadStore(cfg.store.threads_db)
        await store.init()
        try:
            return await store.delete_thread(thread_id)
        finally:
            await store.close()

    if not asyncio.run(_run()):
        console.print(f"[red]Thread not found:[/red] {thread_id}")
        raise typer.Exit(1)
    console.print(f"Deleted thread: {thread_id}")


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from chefmate.cli.output import OutputFormatter

    registry, _ = _build_registry(_load())
    OutputFormatter(console).format_tool_list(registry.list())


@tools_app.command("info")
def tools_info(tool_name: str = typer.Argument(..., help="Tool name")):
    """Show tool details and schema."""
    from chefmate.cli.output import OutputFormatter

    registry, _ = _build_registry(_load())
    tool = registry.get(tool_name)
    if not tool:
        console.print(f"[red]Tool not found:[/red] {tool_name}")
        raise typer.Exit(1)

    OutputFormatter(console).format_tool_info(tool)


@config_app.command("show")
def config_show(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Show effective config."""
    from chefmate.cli.output import OutputFormatter

    cfg = _load(profile)
    OutputFormatter(console).format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Validate config and report any problems."""
    config_path = _get_config_path()
    try:
        cfg = load_config(config_path, profile=profile)
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    problems = cfg.problems()
    if problems:
        console.print("[red]Config validation failed:[/red]")
        for problem in problems:
            console.print(f"  - {problem}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    if cfg.llm.is_configured():
        console.print(f"  LLM provider: {cfg.llm.name} ({cfg.llm.model})")
    else:
        console.print(f"  LLM provider: [yellow]not configured[/yellow] (set {cfg.llm.api_key_env})")
    console.print(f"  Max rounds: {cfg.orchestrator.max_rounds}")
    console.print(f"  Plugins enabled: {cfg.plugins.enabled}")


@app.command()
def version():
    """Show version."""
    console.print("chefmate-core v0.1.0")


def main():
    app()


if __name__ == "__main__":
    main()
