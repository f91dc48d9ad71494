"""logostream CLI — Typer + Rich terminal interface.

Commands: replay, generate, config.
Replays captured generation streams or follows a live one, rendering
progress with Rich.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from logostream import __version__
from logostream.client import GenerationClient
from logostream.display import ProgressDisplay, render_summary
from logostream.schemas.brief import LogoBrief
from logostream.settings import LogoStreamConfig, load_config
from logostream.stream.processor import StreamProcessor
from logostream.stream.writer import iter_chunks

console = Console()

app = typer.Typer(
    name="logostream",
    help="Process AI logo generation progress streams.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"logostream {__version__}")
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
        help="Log stream internals (malformed objects, retries).",
    ),
) -> None:
    """logostream — follow AI logo generation progress streams."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(path: str) -> LogoStreamConfig:
    """Load configuration, exit on error."""
    try:
        return load_config(Path(path) if path else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _write_assets(path: str, display: ProgressDisplay) -> None:
    if display.assets is None:
        console.print("[yellow]No assets received; nothing written.[/yellow]")
        return
    Path(path).write_text(json.dumps(display.assets, indent=2), encoding="utf-8")
    console.print(f"[dim]Assets written to {path}[/dim]")


# ── logostream replay ─────────────────────────────────────────────


@app.command()
def replay(
    path: Path = typer.Argument(..., help="Captured response body to replay"),
    chunk_size: int = typer.Option(
        1024, "--chunk-size", "-c", min=1,
        help="Bytes per simulated network read",
    ),
    report_truncated: bool = typer.Option(
        False, "--report-truncated",
        help="Report an incomplete trailing object as an error",
    ),
    assets_out: str = typer.Option(
        "", "--assets-out", help="Write the final assets JSON here",
    ),
    config_path: str = typer.Option(
        "", "--config", help="TOML config file (defaults to the packaged one)",
    ),
) -> None:
    """Replay a captured generation stream through the processor."""
    if not path.is_file():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(1)

    config = _load_config(config_path)
    if report_truncated:
        config.stream.report_truncated = True

    data = path.read_bytes()
    processor = StreamProcessor(config.stream)
    with ProgressDisplay(console) as display:
        stats = asyncio.run(
            processor.process_stream(iter_chunks(data, chunk_size), display.callbacks())
        )

    render_summary(console, stats, display)
    if assets_out:
        _write_assets(assets_out, display)
    if display.errors:
        raise typer.Exit(1)


# ── logostream generate ───────────────────────────────────────────


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="What the logo should be"),
    url: str = typer.Option(
        "", "--url", "-u", help="Generator base URL (overrides config)",
    ),
    style: str = typer.Option("", "--style", "-s", help="Visual style"),
    color: list[str] = typer.Option(
        [], "--color", help="Preferred color (repeatable)",
    ),
    font: str = typer.Option("", "--font", help="Preferred typeface"),
    industry: str = typer.Option("general", "--industry", help="Brand industry"),
    assets_out: str = typer.Option(
        "", "--assets-out", help="Write the final assets JSON here",
    ),
    config_path: str = typer.Option(
        "", "--config", help="TOML config file (defaults to the packaged one)",
    ),
) -> None:
    """Request a logo and follow its progress stream."""
    config = _load_config(config_path)
    if url:
        config.client.base_url = url

    try:
        brief = LogoBrief(
            prompt=prompt,
            style=style or None,
            color_palette=color,
            font=font or None,
            industry=industry,
        )
    except ValueError as e:
        console.print(f"[red]Invalid brief:[/red] {e}")
        raise typer.Exit(1) from None

    async def _run(display: ProgressDisplay):
        async with GenerationClient(config.client, stream_config=config.stream) as client:
            return await client.generate(brief, display.callbacks())

    console.print(f"[dim]POST {config.client.base_url}{config.client.generate_path}[/dim]")
    with ProgressDisplay(console) as display:
        stats = asyncio.run(_run(display))

    render_summary(console, stats, display)
    if assets_out:
        _write_assets(assets_out, display)
    if display.errors:
        raise typer.Exit(1)


# ── logostream config ─────────────────────────────────────────────


@app.command("config")
def show_config(
    config_path: str = typer.Option(
        "", "--config", help="TOML config file (defaults to the packaged one)",
    ),
) -> None:
    """Show the effective configuration."""
    config = _load_config(config_path)

    table = Table(title="logostream configuration", title_style="bold")
    table.add_column("Section", style="cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    for section_name in ("stream", "client", "cache"):
        section = getattr(config, section_name).model_dump()
        for key, value in section.items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    table.add_row(section_name, f"{key}.{sub_key}", str(sub_value))
            else:
                table.add_row(section_name, key, str(value))

    console.print(table)
