"""Historical provider commands."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..db import HistoricalSourceManager
from ..historical import default_registry
from .common import check, db_connection, require_config

console = Console()
providers_app = typer.Typer(help="Manage historical providers")


@providers_app.command("list")
def providers_list() -> None:
    """List historical providers and their health."""
    config = require_config()
    manager = HistoricalSourceManager()
    registry = default_registry(config)
    with db_connection(config) as conn:
        manager.sync_providers(conn, [(p.key, p.name) for p in registry])
        providers = manager.get_all(conn)

    table = Table(title="Historical Providers")
    table.add_column("Key", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Enabled", style="yellow")
    table.add_column("Status", style="bold")
    table.add_column("Failures", style="red")
    table.add_column("Fetched", style="green")
    table.add_column("Last error", style="dim")

    for provider in providers:
        table.add_row(
            provider.provider_key,
            provider.name,
            check(provider.enabled),
            provider.status.value,
            str(provider.consecutive_failures),
            str(provider.total_articles_fetched),
            (provider.last_error or "")[:60],
        )

    console.print(table)


def _set_enabled(key: str, enabled: bool) -> None:
    config = require_config()
    registry = default_registry(config)
    if registry.get(key) is None:
        console.print(f"[red]Unknown provider '{key}'. Known: {', '.join(registry.keys())}[/red]")
        raise typer.Exit(1)

    manager = HistoricalSourceManager()
    with db_connection(config) as conn:
        manager.sync_providers(conn, [(p.key, p.name) for p in registry])
        manager.set_enabled(conn, key, enabled)

    state = "Enabled" if enabled else "Disabled"
    console.print(f"[green]✅ {state} provider: {key}[/green]")


@providers_app.command("enable")
def providers_enable(key: str = typer.Argument(..., help="Provider key")) -> None:
    """Enable a provider and reset its health."""
    _set_enabled(key, True)


@providers_app.command("disable")
def providers_disable(key: str = typer.Argument(..., help="Provider key")) -> None:
    """Disable a provider."""
    _set_enabled(key, False)


@providers_app.command("test")
def providers_test(
    key: Optional[str] = typer.Argument(None, help="Provider key to test (or test all)"),
) -> None:
    """Check that provider services answer."""
    config = require_config()
    registry = default_registry(config)
    if key:
        provider = registry.get(key)
        if provider is None:
            console.print(f"[red]Unknown provider '{key}'.[/red]")
            raise typer.Exit(1)
        providers = [provider]
    else:
        providers = list(registry)

    for provider in providers:
        result = asyncio.run(provider.test_connection())
        if result.success:
            console.print(f"[green]✅ {provider.key}: {result.message}[/green]")
        else:
            console.print(f"[red]❌ {provider.key}: {result.message}[/red]")
