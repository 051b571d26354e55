"""Live terminal preview of a profile stream.

Renders each StreamProgress snapshot as a Rich panel: a status header,
one row per adapter field (found or still pending), and the tail of the
raw buffer. Used by ``profilestream replay``.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from profilestream.reporter import ProgressListener
from profilestream.schemas.adapter import SchemaAdapter
from profilestream.schemas.progress import StreamProgress, StreamStatus

_STATUS_MARKUP: dict[StreamStatus, str] = {
    StreamStatus.IDLE: "[dim]○[/dim] Ready",
    StreamStatus.UPLOADING: "[bold cyan]◉[/bold cyan] Uploading",
    StreamStatus.CREATING_ASSISTANT: "[bold cyan]◉[/bold cyan] Preparing AI",
    StreamStatus.FETCHING: "[bold cyan]◉[/bold cyan] Fetching",
    StreamStatus.SCRAPING: "[bold cyan]◉[/bold cyan] Scraping",
    StreamStatus.PARSING: "[bold blue]◉[/bold blue] Analyzing",
    StreamStatus.AGGREGATING: "[bold blue]◉[/bold blue] Merging profiles",
    StreamStatus.COMPLETE: "[bold green]●[/bold green] Complete",
    StreamStatus.ERROR: "[bold red]✗[/bold red] Failed",
}

_PENDING = "[dim]· · ·[/dim]"


def _array_value(items: Any, count: int) -> str:
    if isinstance(items, list) and items and all(isinstance(i, str) for i in items):
        shown = ", ".join(items[:6])
        return shown + (f" (+{len(items) - 6})" if len(items) > 6 else "")
    return f"{count} found"


def render_progress(
    progress: StreamProgress, adapter: SchemaAdapter, preview_chars: int = 400
) -> Panel:
    """Build the panel for one snapshot."""
    header = Text.from_markup(_STATUS_MARKUP.get(progress.status, progress.status))
    if progress.message:
        header.append(f"  {progress.message}", style="dim")

    partial = progress.partial_data or {}
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Field", style="bold", min_width=12)
    table.add_column("Value")

    for scalar in adapter.scalars:
        value = partial.get(scalar.label)
        table.add_row(scalar.label.title(), value if value is not None else _PENDING)

    for array in adapter.arrays:
        count = partial.get(f"{array.label}_count", 0)
        if count:
            value = _array_value(partial.get(array.label), count)
        else:
            value = _PENDING
        table.add_row(array.label.title(), value)

    parts: list[Any] = [header, Text()]
    if progress.fields_found is not None:
        parts.append(Text(f"{progress.fields_found} fields found", style="blue"))
    parts.append(table)

    if progress.status == StreamStatus.ERROR and progress.error:
        parts.append(Text())
        parts.append(Text(progress.error, style="red"))

    buffer = progress.streamed_text or ""
    if buffer and progress.status != StreamStatus.COMPLETE:
        tail = buffer[-preview_chars:]
        parts.append(Text())
        parts.append(Panel(Text(tail, style="dim"), title="stream", border_style="dim"))

    style = {
        StreamStatus.COMPLETE: "green",
        StreamStatus.ERROR: "red",
    }.get(progress.status, "cyan")
    return Panel(Group(*parts), title=f"[bold]{adapter.name}[/bold]", border_style=style)


class ProgressDisplay:
    """Rich Live wrapper that re-renders on every emitted snapshot."""

    def __init__(
        self, console: Console, adapter: SchemaAdapter, preview_chars: int = 400
    ) -> None:
        self._console = console
        self._adapter = adapter
        self._preview_chars = preview_chars
        self._latest = StreamProgress(source=adapter.name)
        self._live: Live | None = None
        self.updates: int = 0

    def __enter__(self) -> ProgressDisplay:
        self._live = Live(
            self._render(),
            console=self._console,
            refresh_per_second=8,
            transient=False,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        if self._live:
            self._live.__exit__(*args)
            self._live = None

    def create_listener(self) -> ProgressListener:
        """Create a listener to register on a ProgressReporter."""

        def _handle(progress: StreamProgress) -> None:
            self._latest = progress
            self.updates += 1
            if self._live:
                self._live.update(self._render())

        return _handle

    def _render(self) -> Panel:
        return render_progress(self._latest, self._adapter, self._preview_chars)
