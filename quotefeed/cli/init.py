"""Init command implementation."""

from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import Config, ConfigModel, SourceConfig, default_config_path, save_config, save_sources
from ..db import HistoricalSourceManager, SourceManager, get_connection, init_database, validate_connection
from ..historical import default_registry

console = Console()


def create_default_sources() -> List[SourceConfig]:
    """Create default news sources."""
    return [
        SourceConfig(domain="apnews.com", name="Associated Press", is_top_story=True),
        SourceConfig(domain="reuters.com", name="Reuters", is_top_story=True),
        SourceConfig(domain="npr.org", name="NPR", rss_url="https://feeds.npr.org/1001/rss.xml"),
        SourceConfig(domain="bbc.com", name="BBC News", rss_url="https://feeds.bbci.co.uk/news/rss.xml"),
        SourceConfig(domain="theguardian.com", name="The Guardian", rss_url="https://www.theguardian.com/world/rss"),
        SourceConfig(domain="politico.com", name="Politico"),
        SourceConfig(domain="thehill.com", name="The Hill", rss_url="https://thehill.com/feed/"),
        SourceConfig(domain="pbs.org", name="PBS NewsHour"),
    ]


def init_command(
    config_dir: Path = typer.Option(
        default_config_path().parent,
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("quotefeed", "--db-name", help="Database name"),
    db_user: str = typer.Option("quotefeed_user", "--db-user", help="Database user"),
    seed_sources: bool = typer.Option(
        True,
        "--seed-sources/--no-seed-sources",
        help="Seed default news sources",
    ),
) -> None:
    """Initialize QuoteFeed configuration and database."""
    console.print(Panel.fit("QuoteFeed - Initialization", style="bold blue"))

    # Create configuration directory
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    sources_path = config_dir / "sources.yaml"

    # Create default configuration
    config_model = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "QUOTEFEED_DB_PASSWORD",
        },
    )

    save_config(config_model, config_path)
    console.print(f"✅ Created config: {config_path}")

    sources = create_default_sources() if seed_sources else []
    save_sources(sources, sources_path)
    console.print(f"✅ Created sources: {sources_path} ({len(sources)} sources)")

    # Validate database connection
    console.print("\n[bold]Testing database connection...[/bold]")
    config = Config(config_path=config_path, model=config_model)
    db_config = config.get_db_config()

    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export QUOTEFEED_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    # Initialize database schema
    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(db_config)
        with get_connection(db_config) as conn:
            SourceManager().sync_sources(conn, sources)
            registry = default_registry(config)
            HistoricalSourceManager().sync_providers(conn, [(p.key, p.name) for p in registry])
        console.print(f"✅ Database schema initialized ({len(registry)} historical providers registered)")
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ QuoteFeed initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Sources: {sources_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export QUOTEFEED_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set LLM API key: [bold]export OPENAI_API_KEY=your_key[/bold]\n"
            f"3. Run one cycle: [bold]quotefeed cycle[/bold], or start the scheduler: [bold]quotefeed serve[/bold]",
            style="green",
        )
    )
