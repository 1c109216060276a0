"""Watch commands."""

import asyncio
from typing import List, Optional

import typer
from psycopg_pool import AsyncConnectionPool
from rich.console import Console

from ..errors import WatchError
from ..watches import add_watch, update_watch
from .common import load_settings, with_pool

console = Console()
watches_app = typer.Typer(help="Manage subject watches")


@watches_app.command("add")
def watches_add(
    query: str = typer.Argument(..., help="Whitespace-separated match tokens"),
    subject_id: Optional[int] = typer.Option(None, "--subject-id", help="Subject id"),
    subject_name: Optional[str] = typer.Option(None, "--subject", "-s", help="Subject name"),
    feed_urls: Optional[List[str]] = typer.Option(
        None,
        "--feed",
        "-f",
        help="Extra feed URL to link (repeatable)",
    ),
) -> None:
    """Add a watch to a subject and link feeds to it."""
    config = load_settings()

    async def add(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await add_watch(
                conn,
                query,
                subject_id=subject_id,
                subject_name=subject_name,
                feed_urls=feed_urls,
            )

    try:
        result = asyncio.run(with_pool(config, add))
    except WatchError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]✅ Added watch #{result.watch.id} ({len(result.feed_ids)} feeds)[/green]"
    )


@watches_app.command("update")
def watches_update(
    watch_id: int = typer.Argument(..., help="Watch id"),
    query: str = typer.Argument(..., help="New query"),
    feed_urls: Optional[List[str]] = typer.Option(
        None,
        "--feed",
        "-f",
        help="Extra feed URL to link (repeatable)",
    ),
) -> None:
    """Change a watch's query and re-resolve its feeds."""
    config = load_settings()

    async def update(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await update_watch(conn, watch_id, query, feed_urls=feed_urls)

    try:
        result = asyncio.run(with_pool(config, update))
    except WatchError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]✅ Updated watch #{result.watch.id} ({len(result.feed_ids)} feeds)[/green]"
    )
