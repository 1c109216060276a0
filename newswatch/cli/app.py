"""Main CLI application."""

from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..logging_config import configure_logging
from .common import load_settings
from .feeds import feeds_app
from .init import init_command
from .run import hydrate_command, run_command
from .subjects import subjects_app
from .watches import watches_app

app = typer.Typer(
    name="newswatch",
    help="Newswatch - subject watches over news feeds",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (DEBUG, INFO, WARNING, ERROR). Default: from config",
    ),
) -> None:
    """Configure logging before any command runs."""
    level = log_level or load_settings().config.logging.level
    configure_logging(level)


# Register commands
app.command("init")(init_command)
app.command("run")(run_command)
app.command("hydrate")(hydrate_command)
app.add_typer(feeds_app, name="feeds", help="Inspect and seed the feed catalog")
app.add_typer(subjects_app, name="subjects", help="Manage followed subjects")
app.add_typer(watches_app, name="watches", help="Manage subject watches")


if __name__ == "__main__":
    app()
