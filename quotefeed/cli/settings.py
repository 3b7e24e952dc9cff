"""Pipeline settings commands."""

import typer
from rich.console import Console
from rich.table import Table

from ..config import PipelineSettings
from ..db import SettingsManager
from .common import db_connection, require_config

console = Console()
settings_app = typer.Typer(help="Show and change pipeline settings")


@settings_app.command("show")
def settings_show() -> None:
    """Show effective settings and where each value comes from."""
    config = require_config()
    manager = SettingsManager()
    with db_connection(config) as conn:
        stored = manager.get_all(conn)
        effective = manager.load_pipeline_settings(conn, config.config.pipeline)

    table = Table(title="Pipeline Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")
    table.add_column("Description", style="white")

    for key, field in PipelineSettings.model_fields.items():
        table.add_row(
            key,
            str(getattr(effective, key)),
            "database" if key in stored else "config",
            field.description or "",
        )

    console.print(table)


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Persist a setting; it takes effect from the next cycle."""
    config = require_config()
    try:
        with db_connection(config) as conn:
            SettingsManager().set_value(conn, key, value)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ {key} = {value}[/green]")
