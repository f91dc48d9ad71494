"""Rich terminal rendering of a generation stream.

ProgressDisplay is a callbacks bundle: it turns stream events into a
live progress bar, status lines for previews, cache hits, warnings and
errors, and a summary table once the stream ends.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from logostream.schemas.events import GenerationProgress, StageCompleteEvent
from logostream.schemas.streaming import StreamStats
from logostream.stream.dispatcher import StreamCallbacks

_END_STYLE = {
    "success": "bold green",
    "error": "bold red",
    "cancelled": "bold yellow",
}


class ProgressDisplay:
    """Renders stream events to a Rich console.

    Use as a context manager around ``process_stream`` and pass
    ``display.callbacks()`` as the callback table.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("[dim]{task.fields[status]}"),
            console=self.console,
        )
        self._task: TaskID | None = None

        self.session_id = ""
        self.assets: dict[str, Any] | None = None
        self.errors: list[str] = []
        self.previews = 0
        self.cached = False
        self.end_status: str | None = None

    def __enter__(self) -> ProgressDisplay:
        self._progress.start()
        self._task = self._progress.add_task("Waiting", total=100, status="")
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._progress.stop()

    def callbacks(self) -> StreamCallbacks:
        return StreamCallbacks(
            on_start=self._on_start,
            on_progress=self._on_progress,
            on_preview=self._on_preview,
            on_complete=self._on_complete,
            on_error=self._on_error,
            on_cache=self._on_cache,
            on_stage_complete=self._on_stage_complete,
            on_warning=self._on_warning,
            on_info=self._on_info,
            on_end=self._on_end,
        )

    def _print(self, message: str) -> None:
        self._progress.console.print(message)

    def _update(self, **kwargs: Any) -> None:
        if self._task is not None:
            self._progress.update(self._task, **kwargs)

    # ── Handlers ──────────────────────────────────────────────────

    def _on_start(self, session_id: str) -> None:
        self.session_id = session_id
        self._print(f"[bold]Session[/bold] {session_id}")
        self._update(description="Starting")

    def _on_progress(self, progress: GenerationProgress) -> None:
        self._update(
            description=progress.current_stage or "Generating",
            completed=progress.overall_progress,
            status=progress.status_message,
        )

    def _on_preview(self, svg: str) -> None:
        self.previews += 1
        self._print(f"[magenta]Preview #{self.previews}[/magenta] ({len(svg):,} chars of SVG)")

    def _on_complete(self, assets: dict[str, Any], session_id: str) -> None:
        self.assets = assets
        if session_id:
            self.session_id = session_id
        self._update(description="Complete", completed=100, status="")
        self._print(f"[bold green]✓ Generation complete[/bold green] ({len(assets)} assets)")

    def _on_error(self, message: str) -> None:
        self.errors.append(message)
        self._print(f"[bold red]✗ Error:[/bold red] {message}")

    def _on_cache(self, is_cached: bool) -> None:
        self.cached = is_cached
        if is_cached:
            self._print("[cyan]Served from cache[/cyan]")

    def _on_stage_complete(self, event: StageCompleteEvent) -> None:
        mark = "[green]●[/green]" if event.success else "[red]✗[/red]"
        name = event.stage_name or event.stage_id
        self._print(f"{mark} {name} [dim]({event.duration / 1000:.1f}s)[/dim]")

    def _on_warning(self, message: str) -> None:
        self._print(f"[yellow]⚠ {message}[/yellow]")

    def _on_info(self, message: str) -> None:
        self._print(f"[dim]{message}[/dim]")

    def _on_end(self, status: str) -> None:
        self.end_status = status
        style = _END_STYLE.get(status, "white")
        self._print(f"[{style}]Stream ended: {status}[/{style}]")


def render_summary(console: Console, stats: StreamStats, display: ProgressDisplay) -> None:
    """Print a table describing the finished stream."""
    table = Table(title="Stream Summary", show_header=False, title_style="bold")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Session", display.session_id or "[dim]—[/dim]")
    table.add_row("Chunks", str(stats.chunks))
    table.add_row("Bytes", f"{stats.bytes_read:,}")
    table.add_row("Events", f"{stats.dispatched} of {stats.objects} objects")
    if stats.malformed:
        table.add_row("Malformed", f"[yellow]{stats.malformed}[/yellow]")
    if stats.unknown:
        table.add_row("Unknown types", str(stats.unknown))
    if stats.handler_errors:
        table.add_row("Handler errors", f"[red]{stats.handler_errors}[/red]")
    if stats.truncated_bytes:
        table.add_row("Truncated tail", f"{stats.truncated_bytes:,} chars discarded")
    if stats.transport_error:
        table.add_row("Transport error", f"[red]{stats.transport_error}[/red]")
    if stats.cancelled:
        table.add_row("Cancelled", "[yellow]yes[/yellow]")
    table.add_row("Previews", str(display.previews))
    table.add_row("Cached", "yes" if display.cached else "no")
    table.add_row("Duration", f"{stats.duration:.2f}s")

    console.print(table)
