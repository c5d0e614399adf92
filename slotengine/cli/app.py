"""
Developer CLI for inspecting slots against a YAML fixture, using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.in_memory_store import InMemorySchedulingStore
from ..config import EngineConfig, get_default_config_path
from ..services.availability_service import AvailabilityService

app = typer.Typer(
    name="slotengine",
    help="Inspect bookable session slots computed from provider availability",
    add_completion=False
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> EngineConfig:
    """Use the given config, else ./config.yaml if present, else defaults."""
    config_path = config_file or get_default_config_path()
    if config_file is None and not config_path.exists():
        return EngineConfig()
    return EngineConfig.load_from_yaml(config_path)


def _parse_instant(value: Optional[str], tz: str):
    if value is None:
        return None
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse timestamp {value!r}: {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, pendulum.DateTime):
        console.print(f"[red]Expected a date and time, got {value!r}[/red]")
        raise typer.Exit(1)
    return parsed


def _parse_day(value: str, tz: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Could not parse date {value!r}: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def slots(
    fixture: Annotated[Path, typer.Argument(help="YAML fixture with providers and sessions")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider ID")],
    start: Annotated[Optional[str], typer.Option("--start", help="First date (YYYY-MM-DD), defaults to today")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last date (YYYY-MM-DD), inclusive")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference instant (ISO 8601) instead of the clock")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """
    List bookable slots for a provider.

    Examples:

        slotengine slots fixture.yaml --provider coach-1
        slotengine slots fixture.yaml -p coach-1 --start 2024-11-25 --end 2024-11-29
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        store = InMemorySchedulingStore.load_from_yaml(
            fixture, active_statuses=config.active_status_set()
        )
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    tz = config.timezone
    reference_now = _parse_instant(now, tz)
    start_day = _parse_day(start, tz) if start else (reference_now or pendulum.now(tz)).in_timezone(tz).date()
    end_day = _parse_day(end, tz) if end else start_day.add(days=config.default_range_days - 1)

    service = AvailabilityService(store, store, config=config)
    found = asyncio.run(
        service.compute_available_slots(provider, start_day, end_day, now=reference_now)
    )

    console.print()
    if not found:
        console.print(
            f"[yellow]No bookable slots for {provider} between "
            f"{start_day.isoformat()} and {end_day.isoformat()}.[/yellow]"
        )
        console.print()
        return

    table = Table(
        title=f"Bookable slots for {provider} ({tz})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Date", style="bold yellow")
    table.add_column("Day")
    table.add_column("Start")
    table.add_column("End")

    for slot in found:
        table.add_row(
            slot.date.isoformat(),
            slot.date.format("dddd"),
            f"{slot.start_time:%H:%M}",
            f"{slot.end_time:%H:%M}",
        )

    console.print(table)
    console.print(f"[green]✓ {len(found)} slot(s)[/green]")
    console.print()


@app.command()
def check(
    fixture: Annotated[Path, typer.Argument(help="YAML fixture with providers and sessions")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider ID")],
    at: Annotated[str, typer.Option("--at", help="Session start (ISO 8601)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Session duration in minutes")],
    now: Annotated[Optional[str], typer.Option("--now", help="Reference instant (ISO 8601) instead of the clock")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """
    Check whether a single slot could still be booked.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        store = InMemorySchedulingStore.load_from_yaml(
            fixture, active_statuses=config.active_status_set()
        )
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if duration <= 0:
        console.print("[bold red]Error:[/bold red] --duration must be greater than zero")
        raise typer.Exit(1)

    tz = config.timezone
    instant = _parse_instant(at, tz)
    service = AvailabilityService(store, store, config=config)
    available = asyncio.run(
        service.is_slot_still_available(provider, instant, duration, now=_parse_instant(now, tz))
    )

    label = instant.in_timezone(tz).format("YYYY-MM-DD HH:mm")
    if available:
        console.print(f"\n[green]✓ {label} ({duration} min) is available for {provider}[/green]\n")
    else:
        console.print(f"\n[yellow]✗ {label} ({duration} min) is not available for {provider}[/yellow]\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
