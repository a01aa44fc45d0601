from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

from .config_store import ConfigStore
from .engine import BrightnessEngine
from .models import CycleStatus, format_time_of_day
from .notifications import ConsoleNotifier


console = Console()

app = typer.Typer(
    no_args_is_help=True,
    help="Switches screen brightness between day and night levels on a sunrise/sunset or manual schedule.",
)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to the settings file", show_default=False),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Enable debug logging")]


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_engine(config_path: Path | None) -> BrightnessEngine:
    store = ConfigStore(config_path)
    return BrightnessEngine(config_store=store, notifier=ConsoleNotifier(console))


def print_status(status: CycleStatus) -> None:
    style = "green" if status.state in ("applied", "disabled") else "yellow"
    console.print(f"[{style}]{status.text()}[/]")


@app.command()
def run(config: ConfigOption = None, verbose: VerboseOption = False):
    """Keeps brightness in sync with the schedule until interrupted"""
    setup_logging(verbose)
    engine = build_engine(config)
    engine.add_listener(print_status)
    engine.start()
    console.print(
        f"Updating every {engine.settings.update_interval_seconds}s. Press Ctrl+C to stop."
    )

    idle = threading.Event()
    try:
        while engine.is_running:
            idle.wait(1.0)
    except KeyboardInterrupt:
        console.print("Stopping...")
    finally:
        engine.stop()


@app.command()
def apply(config: ConfigOption = None, verbose: VerboseOption = False):
    """Evaluates the schedule once and applies the brightness now"""
    setup_logging(verbose)
    engine = build_engine(config)
    status = engine.run_cycle(show_messages=True)
    print_status(status)
    if status.state not in ("applied", "disabled"):
        raise typer.Exit(code=1)


@app.command()
def status(config: ConfigOption = None):
    """Shows the current settings and the last known location"""
    store = ConfigStore(config)
    settings = store.load()

    table = Table(title=f"Settings ({store.config_path})", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Enabled", str(settings.enabled))
    table.add_row("Sunrise/sunset schedule", str(settings.use_sun_schedule))
    table.add_row("IP geolocation", str(settings.use_geolocation))
    table.add_row("Sun times source", settings.sun_times_source)
    table.add_row("Day brightness", f"{settings.day_brightness}%")
    table.add_row("Night brightness", f"{settings.night_brightness}%")
    table.add_row("Day starts", format_time_of_day(settings.day_start_time))
    table.add_row("Night starts", format_time_of_day(settings.night_start_time))
    table.add_row("City", settings.city or "-")
    table.add_row("Location", settings.location_label())
    table.add_row("Update interval", f"{settings.update_interval_seconds}s")
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
