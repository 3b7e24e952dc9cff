"""Cycle, scheduler and maintenance commands."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..classification import TopicMaterializer
from ..db import ArticleStorage, BackfillLog, HistoricalSourceManager, RunManager, SourceManager, close_connection_pool
from ..pipeline import STALE_RUN_AFTER, CycleOrchestrator
from .common import check, db_connection, require_config, require_database

console = Console()
backfill_app = typer.Typer(help="Inspect gap backfill")


def serve_command() -> None:
    """Run the fetch scheduler until interrupted."""
    config = require_config()
    require_database(config)

    orchestrator = CycleOrchestrator(config)
    console.print(
        f"[bold blue]QuoteFeed scheduler started[/bold blue] "
        f"(every {orchestrator.interval_minutes} min, Ctrl+C to stop)"
    )
    try:
        asyncio.run(orchestrator.serve())
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped by user[/yellow]")
    finally:
        close_connection_pool()


def cycle_command() -> None:
    """Run one fetch cycle now."""
    config = require_config()
    with db_connection(config) as conn:
        active = RunManager().get_active_run(conn, STALE_RUN_AFTER)
    if active is not None:
        console.print(
            f"[yellow]Cycle {active.id} has been running since {active.started_at:%Y-%m-%d %H:%M}; "
            "not starting another.[/yellow]"
        )
        raise typer.Exit(1)

    orchestrator = CycleOrchestrator(config)
    try:
        result = asyncio.run(orchestrator.trigger_cycle("manual"))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cycle interrupted by user[/yellow]")
        raise typer.Exit(1)
    finally:
        close_connection_pool()

    if result is None:
        console.print("[red]❌ Cycle failed. Check logs for details.[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Cycle {result.run_id} ({result.status})")
    table.add_column("Phase", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Duration", style="yellow")
    table.add_column("Details", style="dim")

    for name, stage in result.stages.items():
        status = "[green]✓[/green]" if stage["success"] else "[red]✗[/red]"
        details = stage["error"] or ", ".join(f"{k}={v}" for k, v in stage["stats"].items())
        table.add_row(name.title(), status, f"{stage['duration']:.1f}s", details)

    console.print(table)
    console.print(
        f"New articles: {result.new_articles} • Processed: {result.articles_processed} • "
        f"New quotes: {len(result.new_quote_ids)}"
    )
    if result.status != "success":
        raise typer.Exit(1)


def status_command(
    runs: int = typer.Option(5, "--runs", "-n", help="Recent runs to show"),
) -> None:
    """Show article queue, recent runs and source health."""
    config = require_config()
    with db_connection(config) as conn:
        counts = ArticleStorage().count_by_status(conn)
        recent = RunManager().get_recent_runs(conn, runs)
        sources = SourceManager().get_sources(conn)
        providers = HistoricalSourceManager().get_all(conn)

    console.print(
        Panel.fit(
            "\n".join(f"{status}: {count}" for status, count in sorted(counts.items())) or "No articles yet",
            title="Articles",
        )
    )

    table = Table(title="Recent Runs")
    table.add_column("ID", style="cyan")
    table.add_column("Started", style="yellow")
    table.add_column("Trigger")
    table.add_column("Status", style="bold")
    for run in recent:
        table.add_row(str(run.id), run.started_at.strftime("%Y-%m-%d %H:%M:%S"), run.trigger, run.status)
    console.print(table)

    disabled = [s.domain for s in sources if not s.enabled]
    failing = [s.domain for s in sources if s.enabled and s.consecutive_failures]
    console.print(f"Sources: {len(sources)} total, {len(disabled)} disabled, {len(failing)} failing")
    for provider in providers:
        console.print(
            f"  {check(provider.enabled)} {provider.provider_key}: {provider.status.value}"
            f" ({provider.total_articles_fetched} fetched)"
        )


def materialize_command(
    topic: Optional[int] = typer.Option(None, "--topic", "-t", help="Rebuild only this topic"),
    date_windows: bool = typer.Option(False, "--date-windows", help="Only link quotes dated inside a topic's window"),
) -> None:
    """Rebuild quote-topic links from keyword links."""
    config = require_config()
    materializer = TopicMaterializer(respect_date_windows=date_windows)
    with db_connection(config) as conn:
        if topic is None:
            result = materializer.materialize_all(conn)
        else:
            result = materializer.materialize_topic(conn, topic)

    if topic is not None and result.topics_processed == 0:
        console.print(f"[red]Topic {topic} not found.[/red]")
        raise typer.Exit(1)
    console.print(
        f"[green]✅ Materialized {result.topics_processed} topics, {result.links_created} quote links[/green]"
    )


@backfill_app.command("status")
def backfill_status(
    limit: int = typer.Option(20, "--limit", "-n", help="Attempts to show"),
) -> None:
    """Show recent backfill attempts."""
    config = require_config()
    with db_connection(config) as conn:
        attempts = BackfillLog().get_recent(conn, limit)

    if not attempts:
        console.print("[yellow]No backfill attempts yet.[/yellow]")
        return

    table = Table(title="Backfill Attempts")
    table.add_column("Date", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Articles", style="green")
    table.add_column("Quotes", style="green")
    table.add_column("Error", style="red")
    for attempt in attempts:
        table.add_row(
            attempt.target_date.isoformat(),
            attempt.status.value,
            str(attempt.articles_found),
            str(attempt.quotes_extracted),
            attempt.error or "",
        )
    console.print(table)
