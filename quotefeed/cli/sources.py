"""Sources management commands."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import SourceConfig, load_sources, save_sources
from ..db import SourceManager
from ..ingestion import RSSFetcher, feed_url_for
from .common import check, db_connection, require_config

console = Console()
sources_app = typer.Typer(help="Manage live news sources")


@sources_app.command("list")
def sources_list() -> None:
    """List all sources with their health."""
    config = require_config()
    with db_connection(config) as conn:
        sources = SourceManager().get_sources(conn)

    if not sources:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Sources")
    table.add_column("Domain", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Enabled", style="yellow")
    table.add_column("Failures", style="red")
    table.add_column("Feed", style="blue")

    for source in sources:
        table.add_row(
            source.domain,
            source.name,
            check(source.enabled),
            str(source.consecutive_failures),
            source.rss_url or "(Google News)",
        )

    console.print(table)


@sources_app.command("add")
def sources_add(
    domain: str = typer.Option(..., "--domain", "-d", help="Publisher domain, e.g. apnews.com"),
    name: str = typer.Option(..., "--name", "-n", help="Source name"),
    rss_url: Optional[str] = typer.Option(None, "--rss-url", "-u", help="Feed URL (Google News search if omitted)"),
) -> None:
    """Add a new source to the database and the seed file."""
    config = require_config()
    with db_connection(config) as conn:
        source_id = SourceManager().add_source(conn, domain, name, rss_url)

    if source_id is None:
        console.print(f"[red]Source '{domain}' already exists.[/red]")
        raise typer.Exit(1)

    try:
        seeds = load_sources(config.sources_path)
    except FileNotFoundError:
        seeds = []
    if not any(s.domain == domain.lower() for s in seeds):
        seeds.append(SourceConfig(domain=domain.lower(), name=name, rss_url=rss_url))
        save_sources(seeds, config.sources_path)

    console.print(f"[green]✅ Added source: {name} ({domain})[/green]")


def _set_enabled(domain: str, enabled: bool) -> None:
    config = require_config()
    manager = SourceManager()
    with db_connection(config) as conn:
        source = manager.get_source_by_domain(conn, domain)
        if source is None:
            console.print(f"[red]Source '{domain}' not found.[/red]")
            raise typer.Exit(1)
        manager.set_enabled(conn, source.id, enabled)

    state = "Enabled" if enabled else "Disabled"
    console.print(f"[green]✅ {state} source: {domain}[/green]")


@sources_app.command("enable")
def sources_enable(domain: str = typer.Argument(..., help="Source domain")) -> None:
    """Enable a source and clear its failure counter."""
    _set_enabled(domain, True)


@sources_app.command("disable")
def sources_disable(domain: str = typer.Argument(..., help="Source domain")) -> None:
    """Disable a source."""
    _set_enabled(domain, False)


@sources_app.command("test")
def sources_test(
    domain: Optional[str] = typer.Argument(None, help="Source domain to test (or test all enabled)"),
) -> None:
    """Fetch feeds and report how many recent items each one yields."""
    config = require_config()
    manager = SourceManager()
    with db_connection(config) as conn:
        if domain:
            source = manager.get_source_by_domain(conn, domain)
            if source is None:
                console.print(f"[red]Source '{domain}' not found.[/red]")
                raise typer.Exit(1)
            sources = [source]
        else:
            sources = manager.get_enabled_sources(conn)

    http = config.config.http
    fetcher = RSSFetcher(timeout=http.feed_timeout, user_agent=http.user_agent, max_concurrent=http.max_concurrent)
    results = asyncio.run(fetcher.fetch_all(sources, config.config.pipeline.article_lookback_hours))

    for source, result in zip(sources, results):
        if result.success:
            console.print(f"[green]✅ {source.domain}: OK ({result.item_count} items)[/green]")
        else:
            console.print(f"[red]❌ {source.domain}: Failed - {result.error}[/red] [dim]{feed_url_for(source)}[/dim]")
