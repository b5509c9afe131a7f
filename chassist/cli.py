"""Typer + Rich terminal interface for chassist.

Commands: serve, replay, strip.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from chassist import __version__
from chassist.errors import ConfigurationError
from chassist.schemas.events import GenerationEvent, parse_generation_event
from chassist.schemas.transcript import TranscriptEntry
from chassist.settings import load_assistant_config
from chassist.stream.encoder import encode_frame
from chassist.stream.pipeline import AssistantStream
from chassist.stream.reducer import TurnContext
from chassist.stream.scratchpad import strip_scratchpad

console = Console()

app = typer.Typer(
    name="chassist",
    help="ClickHouse assistant response-stream pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Callbacks ───────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"chassist {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """chassist: ClickHouse assistant response-stream pipeline."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ── Helpers ──────────────────────────────────────────────────────


def load_events(path: Path) -> list[GenerationEvent]:
    """Read generation events from a JSON Lines file (blank lines skipped)."""
    events: list[GenerationEvent] = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(parse_generation_event(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as exc:
                raise ValueError(f"{path}:{line_no}: invalid event: {exc}") from exc
    return events


async def _iterate(events: list[GenerationEvent]) -> AsyncIterator[GenerationEvent]:
    for event in events:
        yield event


async def _replay(events: list[GenerationEvent], chart_tool: str) -> tuple[list[str], TranscriptEntry | None]:
    stream = AssistantStream(
        _iterate(events),
        TurnContext(thread_id="replay", user_id="cli", user_message=""),
        chart_tool=chart_tool,
    )
    frames = [encode_frame(frame) async for frame in stream.frames()]
    return frames, stream.transcript


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def serve(
    port: int = typer.Option(8420, "--port", "-p", help="Port to listen on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    config_path: Path = typer.Option(
        None, "--config", "-c", help="Assistant TOML config (defaults to bundled defaults)",
    ),
) -> None:
    """Run the assistant chat API server."""
    try:
        config = load_assistant_config(config_path)
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from None

    import uvicorn

    from chassist.server import create_app

    console.print(Panel(
        f"[bold]URL:[/bold] http://{host}:{port}/ai-chat\n"
        f"[bold]Model:[/bold] {config.model or '[dim]not configured[/dim]'}\n"
        f"[bold]History:[/bold] {config.db_path}",
        title="[bold blue]chassist[/bold blue]",
        border_style="blue",
    ))
    uvicorn.run(create_app(config), host=host, port=port, log_level="warning")


@app.command()
def replay(
    events_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON Lines event recording"),
    chart_tool: str = typer.Option("render_chart", "--chart-tool", help="Name of the charting tool"),
    raw: bool = typer.Option(False, "--raw", help="Print frames as JSON Lines only"),
) -> None:
    """Run recorded generation events through the pipeline."""
    try:
        events = load_events(events_file)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from None

    frames, transcript = asyncio.run(_replay(events, chart_tool))

    if raw:
        for frame in frames:
            typer.echo(frame)
        return

    table = Table(title=f"Outbound frames ({len(frames)})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Frame")
    for i, frame in enumerate(frames, start=1):
        table.add_row(str(i), escape(frame))
    console.print(table)

    if transcript is None:
        console.print("[dim]No assistant text; nothing would be persisted.[/dim]")
        return

    tool_names = ", ".join(tc.name for tc in transcript.tool_calls or []) or "none"
    console.print(Panel(
        f"{escape(transcript.content)}\n\n"
        f"[dim]Tools:[/dim] {tool_names}\n"
        f"[dim]Charts:[/dim] {len(transcript.chart_specs or [])}",
        title="[bold green]Transcript[/bold green]",
        border_style="green",
    ))


@app.command()
def strip(
    text: str = typer.Argument(..., help="Text to clean (use $'...' for newlines)"),
) -> None:
    """Remove leaked scratchpad reasoning from TEXT."""
    typer.echo(strip_scratchpad(text))


# ── Entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    app()
