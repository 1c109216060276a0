"""Feed catalog commands."""

import asyncio

import typer
from psycopg_pool import AsyncConnectionPool
from rich.console import Console
from rich.table import Table

from ..db import feeds as feed_store
from ..feeds import derive_sections, resolve_feeds_for_watch, seed_feed_catalog
from ..feeds.resolver import watch_haystack
from .common import load_settings, with_pool

console = Console()
feeds_app = typer.Typer(help="Inspect and seed the feed catalog")


@feeds_app.command("list")
def feeds_list() -> None:
    """List all catalog feeds."""
    config = load_settings()

    async def load(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await feed_store.list_feeds(conn)

    feeds = asyncio.run(with_pool(config, load))
    if not feeds:
        console.print("[yellow]No feeds in the catalog. Run 'newswatch feeds seed'.[/yellow]")
        return

    table = Table(title="Feed Catalog")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Publication", style="cyan")
    table.add_column("Section", style="magenta")
    table.add_column("Adapter", style="green")
    table.add_column("Score", justify="right")
    table.add_column("Enabled", style="yellow")
    table.add_column("URL", style="blue")

    for feed in feeds:
        table.add_row(
            str(feed.id),
            feed.publication_slug or "-",
            feed.section or "-",
            feed.adapter_key or feed.kind.value,
            f"{feed.quality_score:.1f}" if feed.quality_score is not None else "-",
            "✓" if feed.enabled else "✗",
            feed.url,
        )

    console.print(table)


@feeds_app.command("seed")
def feeds_seed() -> None:
    """Insert the built-in publications and feeds."""
    config = load_settings()

    async def seed(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await seed_feed_catalog(conn)

    stats = asyncio.run(with_pool(config, seed))
    console.print(
        f"[green]✅ Seeded feed catalog: {stats['inserted']} new feeds, "
        f"{stats['skipped']} skipped[/green]"
    )


@feeds_app.command("resolve")
def feeds_resolve(
    subject_name: str = typer.Argument(..., help="Subject name"),
    query: str = typer.Argument(..., help="Watch query"),
    limit: int = typer.Option(12, "--limit", "-n", help="Maximum feeds", min=1),
) -> None:
    """Show which feeds a watch would be linked to."""
    config = load_settings()
    sections = derive_sections(watch_haystack(subject_name, query))
    console.print(f"[dim]Sections: {', '.join(sections)}[/dim]")

    async def resolve(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            feed_ids = await resolve_feeds_for_watch(conn, subject_name, query, limit=limit)
            feeds = {feed.id: feed for feed in await feed_store.list_feeds(conn)}
            return [feeds[feed_id] for feed_id in feed_ids if feed_id in feeds]

    feeds = asyncio.run(with_pool(config, resolve))
    if not feeds:
        console.print("[yellow]No feeds resolved.[/yellow]")
        return

    for rank, feed in enumerate(feeds, start=1):
        console.print(f"{rank:>2}. [cyan]{feed.title or feed.url}[/cyan] [dim]({feed.url})[/dim]")
