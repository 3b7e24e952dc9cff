"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import Config, LoggingConfig
from ..logs import setup_logging
from .init import init_command
from .providers import providers_app
from .run import backfill_app, cycle_command, materialize_command, serve_command, status_command
from .settings import settings_app
from .sources import sources_app
from .suggestions import suggestions_app

app = typer.Typer(
    name="quotefeed",
    help="QuoteFeed - News quote ingestion and taxonomy curation",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure logging from the config file when one exists."""
    try:
        logging_config = Config().config.logging
    except (FileNotFoundError, ValueError):
        logging_config = LoggingConfig()
    setup_logging(
        level="DEBUG" if verbose else logging_config.level,
        json_format=logging_config.json_format,
        log_file=logging_config.log_file,
    )


# Register commands
app.command("init")(init_command)
app.command("serve")(serve_command)
app.command("cycle")(cycle_command)
app.command("status")(status_command)
app.command("materialize")(materialize_command)
app.add_typer(sources_app, name="sources", help="Manage live news sources")
app.add_typer(providers_app, name="providers", help="Manage historical providers")
app.add_typer(suggestions_app, name="suggestions", help="Review taxonomy suggestions")
app.add_typer(settings_app, name="settings", help="Show and change pipeline settings")
app.add_typer(backfill_app, name="backfill", help="Inspect gap backfill")


if __name__ == "__main__":
    app()
