"""Helpers shared by CLI commands."""

from typing import Awaitable, Callable, TypeVar

import typer
from psycopg_pool import AsyncConnectionPool
from rich.console import Console

from ..config import Config
from ..db import open_pool, validate_connection
from ..errors import ConfigError

console = Console()

T = TypeVar("T")


def load_settings() -> Config:
    """Config manager, exiting with a message when the file is invalid."""
    config = Config()
    try:
        config.config
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return config


async def with_pool(config: Config, work: Callable[[AsyncConnectionPool], Awaitable[T]]) -> T:
    """Open the pool, check connectivity, run ``work`` and close the pool."""
    async with open_pool(config.config.postgres) as pool:
        if not await validate_connection(pool):
            console.print("[red]❌ Database connection failed![/red]")
            console.print("Please check your database configuration and ensure Postgres is running.")
            raise typer.Exit(1)
        return await work(pool)
