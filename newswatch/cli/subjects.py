"""Subject commands."""

import asyncio

import typer
from psycopg_pool import AsyncConnectionPool
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..db import SubjectStorage
from ..errors import WatchError
from ..models import SubjectType
from ..watches import create_subject
from .common import load_settings, with_pool

console = Console()
subjects_app = typer.Typer(help="Manage followed subjects")


@subjects_app.command("list")
def subjects_list() -> None:
    """List subjects with watch and article counts."""
    config = load_settings()

    async def load(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await SubjectStorage().list_subjects(conn)

    subjects = asyncio.run(with_pool(config, load))
    if not subjects:
        console.print("[yellow]No subjects yet.[/yellow]")
        return

    table = Table(title="Subjects")
    table.add_column("Slug", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="magenta")
    table.add_column("Watches", justify="right", style="green")
    table.add_column("Articles", justify="right", style="yellow")

    for subject in subjects:
        table.add_row(
            subject.slug,
            subject.name,
            subject.type.value,
            str(subject.watches_count),
            str(subject.sources_count),
        )

    console.print(table)


@subjects_app.command("show")
def subjects_show(
    slug: str = typer.Argument(..., help="Subject slug"),
    articles: int = typer.Option(10, "--articles", "-a", help="Articles to show", min=1),
) -> None:
    """Show a subject's watches, feeds and newest matched articles."""
    config = load_settings()

    async def load(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await SubjectStorage().get_subject_detail(conn, slug, articles_limit=articles)

    detail = asyncio.run(with_pool(config, load))
    if detail is None:
        console.print(f"[red]Subject '{slug}' not found.[/red]")
        raise typer.Exit(1)

    watch_lines = []
    for watch in detail.watches:
        state = "✓" if watch.enabled else "✗"
        watch_lines.append(f"{state} #{watch.id} {watch.query} ({len(watch.feeds)} feeds)")
    console.print(
        Panel(
            "\n".join(watch_lines) or "No watches",
            title=f"{detail.subject.name} [{detail.subject.type.value}]",
            style="blue",
        )
    )

    if not detail.articles:
        console.print("[yellow]No matched articles yet.[/yellow]")
        return

    table = Table(title="Latest Articles")
    table.add_column("Published", style="dim")
    table.add_column("Publication", style="cyan")
    table.add_column("Title")
    table.add_column("Sentiment", justify="right")
    table.add_column("Words", justify="right")

    for article in detail.articles:
        sentiment = "-"
        if article.sentiment is not None:
            color = "green" if article.sentiment > 0 else "red" if article.sentiment < 0 else "white"
            sentiment = f"[{color}]{article.sentiment:+.2f}[/{color}]"
        table.add_row(
            article.published.strftime("%Y-%m-%d %H:%M"),
            article.publication_name or article.publication_slug or "-",
            article.title,
            sentiment,
            str(article.word_count) if article.word_count is not None else "-",
        )

    console.print(table)


@subjects_app.command("create")
def subjects_create(
    name: str = typer.Argument(..., help="Subject name"),
    subject_type: SubjectType = typer.Option(
        SubjectType.TOPIC,
        "--type",
        "-t",
        help="Subject type",
        case_sensitive=False,
    ),
) -> None:
    """Follow a new subject with a default watch on its name."""
    config = load_settings()

    async def create(pool: AsyncConnectionPool):
        async with pool.connection() as conn:
            return await create_subject(conn, name, subject_type.value)

    try:
        result = asyncio.run(with_pool(config, create))
    except WatchError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not result.created:
        console.print(f"[yellow]Subject '{result.subject.slug}' already exists.[/yellow]")
        return

    console.print(
        f"[green]✅ Created subject {result.subject.slug} with watch "
        f"{result.watch.watch.query} ({len(result.watch.feed_ids)} feeds)[/green]"
    )
