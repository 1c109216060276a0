"""Init command implementation."""

import asyncio
from pathlib import Path
from typing import Optional

import psycopg
import typer
from psycopg_pool import AsyncConnectionPool
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, default_config_path, save_config
from ..db import init_database, open_pool, validate_connection
from ..feeds import seed_feed_catalog

console = Console()


async def _init_database(config: ConfigModel, seed_catalog: bool) -> Optional[dict]:
    async with open_pool(config.postgres) as pool:
        console.print("\n[bold]Testing database connection...[/bold]")
        if not await validate_connection(pool):
            console.print(
                "[red]❌ Database connection failed![/red]\n"
                "Please ensure Postgres is running and credentials are correct.\n"
                "Set the password via environment variable: "
                f"[bold]export {config.postgres.password_env}=your_password[/bold]"
            )
            raise typer.Exit(1)
        console.print("✅ Database connection successful")

        console.print("\n[bold]Initializing database schema...[/bold]")
        try:
            await init_database(pool)
        except psycopg.Error as e:
            console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
            raise typer.Exit(1)
        console.print("✅ Database schema initialized")

        if not seed_catalog:
            return None
        return await _seed(pool)


async def _seed(pool: AsyncConnectionPool) -> dict:
    async with pool.connection() as conn:
        return await seed_feed_catalog(conn)


def init_command(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file to write. Default: ~/.config/newswatch/config.yaml",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("newswatch", "--db-name", help="Database name"),
    db_user: str = typer.Option("newswatch", "--db-user", help="Database user"),
    seed_catalog: bool = typer.Option(
        True,
        "--seed-catalog/--no-seed-catalog",
        help="Seed the built-in publications and feeds",
    ),
) -> None:
    """Initialize newswatch configuration and database."""
    console.print(Panel.fit("📰 Newswatch - Initialization", style="bold blue"))

    config_path = config_path or default_config_path()
    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "NEWSWATCH_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    stats = asyncio.run(_init_database(config, seed_catalog))
    if stats is not None:
        console.print(
            f"✅ Seeded feed catalog: {stats['inserted']} new feeds, {stats['skipped']} skipped"
        )

    console.print(
        Panel(
            f"[green]✅ Newswatch initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export NEWSWATCH_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set Guardian API key: [bold]export GUARDIAN_API_KEY=your_key[/bold]\n"
            f"3. Follow a subject: [bold]newswatch subjects create \"OpenAI\" --type ORGANIZATION[/bold]\n"
            f"4. Run: [bold]newswatch run[/bold]",
            style="green",
        )
    )
