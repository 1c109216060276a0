"""Run and hydrate command implementations."""

import asyncio
from typing import Optional

import httpx
import typer
from psycopg_pool import AsyncConnectionPool
from rich.console import Console

from ..hydration import run_hydrator_once
from ..pipeline import IngestionRunner, print_run_summary
from .common import load_settings, with_pool

console = Console()


def run_command(
    static: bool = typer.Option(
        False,
        "--static",
        help="Ignore the feed catalog and run the built-in adapters",
    ),
    no_hydrate: bool = typer.Option(
        False,
        "--no-hydrate",
        help="Skip full-text hydration of new sources",
    ),
) -> None:
    """Fetch every adapter once, persist matches and hydrate new sources."""
    config = load_settings()
    settings = config.config
    if no_hydrate:
        settings.hydration.enabled = False

    try:
        runner = IngestionRunner(settings)
        summary = asyncio.run(runner.run(use_static=static or None))
    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted by user[/yellow]")
        raise typer.Exit(1)

    print_run_summary(summary, console)
    if summary.results and len(summary.failed) == len(summary.results):
        raise typer.Exit(1)


def hydrate_command(
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        help="Sources to hydrate. Default: hydration.fallback_limit from config",
        min=1,
    ),
) -> None:
    """Hydrate the newest sources that still lack full text."""
    config = load_settings()
    settings = config.config
    fallback_limit = limit or settings.hydration.fallback_limit

    async def hydrate(pool: AsyncConnectionPool):
        async with httpx.AsyncClient(
            limits=httpx.Limits(max_connections=settings.http.max_connections),
            follow_redirects=True,
        ) as client:
            return await run_hydrator_once(
                pool,
                client,
                http=settings.http,
                fallback_limit=fallback_limit,
            )

    try:
        stats = asyncio.run(with_pool(config, hydrate))
    except KeyboardInterrupt:
        console.print("\n[yellow]Hydration interrupted by user[/yellow]")
        raise typer.Exit(1)

    console.print(
        f"[bold]Hydration:[/bold] {stats.attempted} attempted, "
        f"[green]{stats.hydrated} hydrated[/green], [red]{stats.failed} failed[/red]"
    )
