"""Database connection management."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from ..config.models import PostgresConfig


def create_pool(config: PostgresConfig) -> AsyncConnectionPool:
    """Build an unopened pool; rows come back as dicts.

    Connections are autocommit so that ``conn.transaction()`` blocks are the
    only transaction boundaries.
    """
    return AsyncConnectionPool(
        config.connection_string,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        kwargs={"row_factory": dict_row, "autocommit": True},
        open=False,
    )


@asynccontextmanager
async def open_pool(config: PostgresConfig) -> AsyncIterator[AsyncConnectionPool]:
    """Open a pool for the duration of the block and close it exactly once."""
    pool = create_pool(config)
    await pool.open()
    try:
        yield pool
    finally:
        await pool.close()
