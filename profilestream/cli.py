"""profilestream CLI — Typer + Rich terminal interface.

Commands: adapters (list, show), config (show), replay.
``replay`` pushes a captured profile stream through the extraction engine
with a live preview, which is the quickest way to check an adapter table
against real model output.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import AsyncIterator
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from profilestream import __version__
from profilestream.adapters.registry import get_adapter, load_adapters, load_stream_config
from profilestream.cli_display import ProgressDisplay
from profilestream.reporter import ProgressReporter
from profilestream.schemas.adapter import SchemaAdapter
from profilestream.schemas.config import StreamConfig
from profilestream.schemas.progress import StreamStatus
from profilestream.schemas.streaming import TransportEvent, TransportEventType
from profilestream.transport.driver import consume
from profilestream.transport.sse import iter_sse_events

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="profilestream",
    help="Reveal streamed LLM profile JSON field-by-field.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

adapters_app = typer.Typer(
    name="adapters",
    help="Inspect the schema adapter registry.",
    no_args_is_help=True,
)
app.add_typer(adapters_app, name="adapters")

config_app = typer.Typer(
    name="config",
    help="Show stream configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"profilestream {__version__}")
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
        help="Log extraction and state-machine details.",
    ),
) -> None:
    """profilestream — partial-JSON extraction for streamed profiles."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


# ── Helpers ──────────────────────────────────────────────────────


def _load_registry() -> dict[str, SchemaAdapter]:
    """Load the adapter registry, exit on error."""
    try:
        return load_adapters()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading adapters:[/red] {e}")
        raise typer.Exit(1) from None


def _load_config() -> StreamConfig:
    """Load stream config, exit on error."""
    try:
        return load_stream_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


_FENCE_OPEN_RE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")


def _parse_document(text: str) -> object:
    """Parse a finished model response, tolerating a Markdown code fence."""
    cleaned = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", text))
    return json.loads(cleaned, strict=False)


def _looks_like_sse(path: Path, text: str) -> bool:
    if path.suffix in (".sse", ".events"):
        return True
    return text.lstrip().startswith(("event:", "data:"))


async def _document_events(
    text: str, adapter: SchemaAdapter, chunk_size: int, delay: float
) -> AsyncIterator[TransportEvent]:
    """Replay a raw JSON document as the endpoint would stream it."""
    yield TransportEvent(
        event=TransportEventType.STATUS,
        data={"status": adapter.streaming_status.value, "message": "Replaying document..."},
    )
    for i in range(0, len(text), chunk_size):
        if delay:
            await asyncio.sleep(delay)
        yield TransportEvent(
            event=TransportEventType.TOKEN, data={"token": text[i:i + chunk_size]}
        )

    try:
        profile = _parse_document(text)
    except ValueError as e:
        yield TransportEvent(
            event=TransportEventType.ERROR,
            data={"error": f"Failed to parse profile data: {e}"},
        )
        return
    yield TransportEvent(
        event=TransportEventType.COMPLETE,
        data={"profile": profile, "metadata": {"replayed": True}},
    )


async def _capture_chunks(
    raw: bytes, chunk_size: int, delay: float
) -> AsyncIterator[bytes]:
    """Replay a captured SSE body in fixed-size network reads."""
    for i in range(0, len(raw), chunk_size):
        if delay:
            await asyncio.sleep(delay)
        yield raw[i:i + chunk_size]


# ── Adapters ─────────────────────────────────────────────────────


@adapters_app.command("list")
def adapters_list() -> None:
    """Show all registered schema adapters as a table."""
    registry = _load_registry()

    table = Table(title="Schema Adapters", show_lines=True)
    table.add_column("Name", style="bold cyan")
    table.add_column("Description")
    table.add_column("Phases", style="dim")
    table.add_column("Scalars")
    table.add_column("Arrays")

    for name, adapter in sorted(registry.items()):
        table.add_row(
            name,
            adapter.description,
            f"{adapter.initial_status} → {adapter.streaming_status}",
            ", ".join(s.label for s in adapter.scalars) or "-",
            ", ".join(a.label for a in adapter.arrays) or "-",
        )

    console.print(table)
    console.print(f"\n[dim]{len(registry)} adapters registered[/dim]")


@adapters_app.command("show")
def adapters_show(
    name: str = typer.Argument(..., help="Adapter name"),
) -> None:
    """Show the full extraction table for one adapter."""
    registry = _load_registry()
    try:
        adapter = get_adapter(name, registry)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None

    console.print(f"[bold cyan]{adapter.name}[/bold cyan]  {adapter.description}")
    console.print(
        f"[dim]{adapter.initial_status} → {adapter.streaming_status} → complete[/dim]\n"
    )

    if adapter.scalars:
        scalars = Table(title="Scalar Fields")
        scalars.add_column("Label", style="bold")
        scalars.add_column("JSON keys")
        for scalar in adapter.scalars:
            scalars.add_row(scalar.label, ", ".join(scalar.keys))
        console.print(scalars)

    if adapter.arrays:
        arrays = Table(title="Arrays")
        arrays.add_column("Label", style="bold")
        arrays.add_column("JSON key")
        arrays.add_column("Mode")
        arrays.add_column("Items")
        for array in adapter.arrays:
            arrays.add_row(
                array.label, array.key, array.mode.value,
                "yes" if array.include_items else "count only",
            )
        console.print(arrays)


# ── Config ───────────────────────────────────────────────────────


@config_app.command("show")
def config_show() -> None:
    """Show current stream configuration."""
    config = _load_config()

    table = Table(title="Stream Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Throttle Interval", f"{config.throttle_ms}ms")
    table.add_row("Max Emission Rate", _rate(config.throttle_ms))
    table.add_row("Preview Characters", str(config.preview_chars))
    console.print(table)


def _rate(throttle_ms: int) -> str:
    if throttle_ms <= 0:
        return "unthrottled"
    return f"{1000 / throttle_ms:.0f} Hz"


# ── Replay ───────────────────────────────────────────────────────


@app.command()
def replay(
    path: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True,
        help="Raw JSON model output, or a captured text/event-stream body",
    ),
    source: str = typer.Option("resume", "--source", "-s", help="Schema adapter name"),
    chunk_size: int = typer.Option(
        4, "--chunk-size", "-c", min=1, help="Characters (or bytes) per replayed read",
    ),
    delay_ms: int = typer.Option(
        0, "--delay-ms", "-d", min=0, help="Pause between reads, in milliseconds",
    ),
    throttle_ms: int = typer.Option(
        None, "--throttle-ms", min=0, help="Override the configured throttle interval",
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the final snapshot as JSON instead of a live panel",
    ),
) -> None:
    """Replay a captured stream through the extractor with a live preview."""
    registry = _load_registry()
    try:
        adapter = get_adapter(source, registry)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None

    config = _load_config()
    if throttle_ms is not None:
        config = config.model_copy(update={"throttle_ms": throttle_ms})

    raw = path.read_bytes()
    text = raw.decode("utf-8", errors="replace")
    delay = delay_ms / 1000.0
    if _looks_like_sse(path, text):
        events = iter_sse_events(_capture_chunks(raw, chunk_size, delay))
    else:
        events = _document_events(text, adapter, chunk_size, delay)

    reporter = ProgressReporter(adapter, config=config)

    if as_json:
        reporter.start()
        final = asyncio.run(consume(reporter, events))
        payload = final.to_wire()
        payload.pop("streamedText", None)
        console.print_json(json.dumps(payload))
    else:
        with ProgressDisplay(console, adapter, config.preview_chars) as display:
            reporter.add_listener(display.create_listener())
            reporter.start()
            final = asyncio.run(consume(reporter, events))
        console.print(
            f"[dim]{display.updates} snapshots, "
            f"{len(reporter.text):,} characters streamed[/dim]"
        )

    if final.status == StreamStatus.ERROR:
        raise typer.Exit(1)
