"""Helpers shared by CLI commands."""

from contextlib import contextmanager
from typing import Generator

import psycopg
import typer
from rich.console import Console

from ..config import Config
from ..db import get_connection, validate_connection

console = Console()


def require_config() -> Config:
    """Load configuration or exit with a hint."""
    config = Config()
    try:
        config.config
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config.config_path}. Run 'quotefeed init' first.[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return config


def require_database(config: Config) -> None:
    """Exit cleanly if the database is unreachable."""
    if not validate_connection(config.get_db_config()):
        console.print("[red]❌ Database connection failed![/red]")
        console.print("Please check your database configuration and ensure Postgres is running.")
        raise typer.Exit(1)


@contextmanager
def db_connection(config: Config) -> Generator[psycopg.Connection, None, None]:
    """Connection from the pool, after checking the database is reachable."""
    require_database(config)
    with get_connection(config.get_db_config()) as conn:
        yield conn


def check(flag: bool) -> str:
    return "✓" if flag else "✗"
