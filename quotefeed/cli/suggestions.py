"""Taxonomy suggestion review commands."""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..classification import SuggestionService
from ..exceptions import SuggestionNotFoundError, SuggestionStateError
from ..models import SuggestionStatus, SuggestionType
from .common import db_connection, require_config

console = Console()
suggestions_app = typer.Typer(help="Review taxonomy suggestions")


@suggestions_app.command("list")
def suggestions_list(
    suggestion_type: Optional[SuggestionType] = typer.Option(None, "--type", "-t", help="Suggestion type"),
    status: SuggestionStatus = typer.Option(SuggestionStatus.PENDING, "--status", "-s", help="Review status"),
    limit: int = typer.Option(50, "--limit", "-n", help="Rows to show"),
    offset: int = typer.Option(0, "--offset", help="Rows to skip"),
) -> None:
    """List suggestions, newest first."""
    config = require_config()
    with db_connection(config) as conn:
        suggestions = SuggestionService().list_suggestions(conn, suggestion_type, status, limit, offset)

    if not suggestions:
        console.print("[yellow]No suggestions.[/yellow]")
        return

    table = Table(title=f"Suggestions ({status.value})")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Source", style="yellow")
    table.add_column("Data", style="white")
    table.add_column("Created", style="dim")

    for suggestion in suggestions:
        table.add_row(
            str(suggestion.id),
            suggestion.suggestion_type.value,
            suggestion.source.value,
            json.dumps(suggestion.suggested_data, ensure_ascii=False),
            suggestion.created_at.strftime("%Y-%m-%d %H:%M") if suggestion.created_at else "",
        )

    console.print(table)


@suggestions_app.command("approve")
def suggestions_approve(
    suggestion_id: int = typer.Argument(..., help="Suggestion ID"),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Edited suggestion data as JSON"),
) -> None:
    """Approve a suggestion, optionally with edited data."""
    edited = None
    if data:
        try:
            edited = json.loads(data)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON: {e}[/red]")
            raise typer.Exit(1)

    config = require_config()
    try:
        with db_connection(config) as conn:
            result = SuggestionService().approve_suggestion(conn, suggestion_id, edited)
    except (SuggestionNotFoundError, SuggestionStateError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Suggestion {suggestion_id} {result.status.value}[/green]")


@suggestions_app.command("reject")
def suggestions_reject(suggestion_id: int = typer.Argument(..., help="Suggestion ID")) -> None:
    """Reject a suggestion."""
    config = require_config()
    try:
        with db_connection(config) as conn:
            SuggestionService().reject_suggestion(conn, suggestion_id)
    except (SuggestionNotFoundError, SuggestionStateError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Suggestion {suggestion_id} rejected[/green]")
