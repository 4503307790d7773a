"""CLI: Typer app wired to the chat orchestrator."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Optional

import typer
from rich import print as rprint
from rich import print_json
from rich.console import Console
from rich.table import Table

from pi_concierge.config import STREAM_DONE_SENTINEL, STREAM_LINE_PREFIX, load_config
from pi_concierge.domain import USER, CompletionBackendError, Message
from pi_concierge.infrastructure.tools import build_tool_registry

app = typer.Typer(help="pi-concierge: tool-augmented chat proxy for a llama.cpp server on a Raspberry Pi.")


def _setup_logging(verbose: bool, default_level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else default_level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def delta_text(event: str) -> Optional[str]:
    """Content carried by one SSE event from the chat stream; None for the sentinel or non-data events."""
    line = event.strip()
    if not line.startswith(STREAM_LINE_PREFIX):
        return None
    data = line[len(STREAM_LINE_PREFIX):]
    if data == STREAM_DONE_SENTINEL:
        return None
    payload = json.loads(data)
    return payload["choices"][0]["delta"].get("content") or ""


async def _ask(question: str) -> None:
    from pi_concierge.interfaces.http_api import build_orchestrator

    console = Console()
    orchestrator = build_orchestrator(load_config())
    stream = await orchestrator.respond([Message(role=USER, content=question)])
    async for event in stream:
        text = delta_text(event)
        if text:
            console.print(text, end="", markup=False, highlight=False)
    console.print()


@app.command()
def ask(
    question: str = typer.Argument(..., help="What to ask the assistant."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging to stderr."),
) -> None:
    """Run one chat turn end-to-end and print the streamed answer."""
    _setup_logging(verbose)
    try:
        asyncio.run(_ask(question))
    except CompletionBackendError as e:
        rprint(f"[red]Completion backend error.[/red]\n  {e}")
        sys.exit(1)


@app.command()
def tools() -> None:
    """List the tools advertised to the model."""
    config = load_config()
    registry = build_tool_registry(config.tools)
    table = Table(title=f"Tools ({config.tools.backend})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    for d in registry.definitions:
        table.add_row(d.name, d.description)
    Console().print(table)


@app.command()
def call(
    name: str = typer.Argument(..., help="Tool name, e.g. get_system_uptime."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging to stderr."),
) -> None:
    """Invoke one tool and print its JSON result."""
    _setup_logging(verbose)
    registry = build_tool_registry(load_config().tools)
    if name not in registry:
        rprint(f"[red]Unknown tool {name!r}.[/red] Available: {', '.join(registry.names)}")
        sys.exit(1)
    result = asyncio.run(registry.invoke(name))
    print_json(result)


@app.command()
def serve(
    host: str = "127.0.0.1",
    port: int = 8787,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging to stderr."),
) -> None:
    """Run the HTTP API (FastAPI + uvicorn)."""
    import uvicorn

    _setup_logging(verbose, default_level=logging.INFO)
    uvicorn.run("pi_concierge.interfaces.http_api:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    app()
