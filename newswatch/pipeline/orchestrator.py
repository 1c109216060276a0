"""Ingestion runner: adapters, then persistence, then hydration."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncContextManager, Callable, List, Optional, Tuple, Union

import httpx
from psycopg_pool import AsyncConnectionPool
from rich.console import Console
from rich.table import Table

from ..config.models import ConfigModel, PostgresConfig
from ..db import feeds as feed_store
from ..db.connection import open_pool
from ..db.sources import SourceStorage
from ..errors import NewswatchError
from ..hydration import run_hydrator_once
from ..ingestion.base import AdapterContext, SourceAdapter
from ..ingestion.models import NormalizedArticle
from ..ingestion.registry import build_adapters_for_feeds, static_adapters
from ..persistence import persist_matched_articles

logger = logging.getLogger(__name__)

PoolOpener = Callable[[PostgresConfig], AsyncContextManager[AsyncConnectionPool]]


@dataclass
class AdapterRunResult:
    """Outcome of one adapter's fetch, persist and hydrate sequence."""

    adapter_id: str
    fetched: int = 0
    kept: int = 0
    inserted: int = 0
    linked: int = 0
    hydrated: int = 0
    hydration_failed: int = 0
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class RunSummary:
    """Per-adapter results for one run."""

    adapter_source: str = "catalog"
    results: List[AdapterRunResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def failed(self) -> List[AdapterRunResult]:
        return [r for r in self.results if not r.success]

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.results)

    @property
    def linked(self) -> int:
        return sum(r.linked for r in self.results)

    @property
    def hydrated(self) -> int:
        return sum(r.hydrated for r in self.results)


def _describe_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


class IngestionRunner:
    """
    Run every configured adapter once.

    The HTTP client and database pool are opened once for the run and
    closed once at the end, however many adapters failed. A failure
    anywhere in one adapter's sequence is logged and the runner moves on.
    """

    def __init__(
        self,
        config: ConfigModel,
        storage: Optional[SourceStorage] = None,
        pool_opener: PoolOpener = open_pool,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ) -> None:
        """Initialize ingestion runner."""
        self.config = config
        self.storage = storage or SourceStorage()
        self.pool_opener = pool_opener
        self.client_factory = client_factory or self._make_client

    def _make_client(self) -> httpx.AsyncClient:
        http = self.config.http
        return httpx.AsyncClient(
            timeout=httpx.Timeout(http.feed_timeout),
            limits=httpx.Limits(max_connections=http.max_connections),
            headers={"User-Agent": http.user_agent},
            follow_redirects=True,
        )

    async def _load_adapters(
        self,
        pool: AsyncConnectionPool,
        context: AdapterContext,
        use_static: bool,
    ) -> Tuple[List[SourceAdapter], str]:
        if use_static:
            return static_adapters(context), "static"

        async with pool.connection() as conn:
            feeds = await feed_store.load_enabled_feeds(conn)
        if not feeds:
            logger.info("No enabled feeds in the catalog, using static adapters")
            return static_adapters(context), "static"
        return build_adapters_for_feeds(feeds, context), "catalog"

    async def _persist_and_hydrate(
        self,
        pool: AsyncConnectionPool,
        client: httpx.AsyncClient,
        adapter: SourceAdapter,
        articles: List[NormalizedArticle],
        result: AdapterRunResult,
    ) -> None:
        async with pool.connection() as conn:
            persisted = await persist_matched_articles(
                conn,
                adapter.id,
                articles,
                storage=self.storage,
                batch_size=self.config.ingest.persist_batch_size,
            )
        result.fetched = len(articles)
        result.kept = persisted.kept
        result.inserted = persisted.inserted
        result.linked = persisted.linked

        if self.config.hydration.enabled and persisted.hydrate_targets:
            stats = await run_hydrator_once(
                pool,
                client,
                persisted.hydrate_targets,
                http=self.config.http,
                storage=self.storage,
            )
            result.hydrated = stats.hydrated
            result.hydration_failed = stats.failed

    async def _run_adapter(
        self,
        pool: AsyncConnectionPool,
        client: httpx.AsyncClient,
        adapter: SourceAdapter,
        prefetched: Union[List[NormalizedArticle], BaseException, None] = None,
    ) -> AdapterRunResult:
        result = AdapterRunResult(adapter_id=adapter.id)
        started = time.monotonic()
        try:
            if isinstance(prefetched, BaseException):
                raise prefetched
            articles = prefetched if prefetched is not None else await adapter.fetch_batch()
            await self._persist_and_hydrate(pool, client, adapter, articles, result)
        except Exception as e:
            result.error = _describe_error(e)
            logger.error(
                "[%s] adapter run failed: %s",
                adapter.id,
                result.error,
                exc_info=not isinstance(e, (NewswatchError, httpx.HTTPError)),
                extra={"adapter_id": adapter.id},
            )
        finally:
            result.duration = time.monotonic() - started

        if result.success:
            logger.info(
                "[%s] fetched=%d kept=%d inserted=%d linked=%d hydrated=%d",
                adapter.id,
                result.fetched,
                result.kept,
                result.inserted,
                result.linked,
                result.hydrated,
                extra={"adapter_id": adapter.id},
            )
        return result

    async def _prefetch(
        self,
        adapters: List[SourceAdapter],
    ) -> List[Union[List[NormalizedArticle], BaseException]]:
        """Fetch adapters concurrently, bounded by ``max_concurrent_fetches``."""
        semaphore = asyncio.Semaphore(self.config.http.max_concurrent_fetches)

        async def fetch_with_semaphore(adapter: SourceAdapter) -> List[NormalizedArticle]:
            async with semaphore:
                return await adapter.fetch_batch()

        return await asyncio.gather(
            *(fetch_with_semaphore(adapter) for adapter in adapters),
            return_exceptions=True,
        )

    async def run(self, use_static: Optional[bool] = None) -> RunSummary:
        """Run all adapters once and return the per-adapter summary."""
        if use_static is None:
            use_static = self.config.ingest.use_static_adapters

        summary = RunSummary()
        started = time.monotonic()
        client = self.client_factory()
        try:
            async with self.pool_opener(self.config.postgres) as pool:
                context = AdapterContext(
                    client=client,
                    http=self.config.http,
                    guardian=self.config.guardian,
                )
                adapters, summary.adapter_source = await self._load_adapters(
                    pool, context, use_static
                )
                logger.info("Running %d adapters (%s)", len(adapters), summary.adapter_source)

                if self.config.http.max_concurrent_fetches > 1:
                    fetched = await self._prefetch(adapters)
                    for adapter, batch in zip(adapters, fetched):
                        summary.results.append(
                            await self._run_adapter(pool, client, adapter, batch)
                        )
                else:
                    for adapter in adapters:
                        summary.results.append(await self._run_adapter(pool, client, adapter))
        finally:
            await client.aclose()
            summary.duration = time.monotonic() - started

        return summary


def print_run_summary(summary: RunSummary, console: Optional[Console] = None) -> None:
    """Print per-adapter results as a table."""
    console = console or Console()

    table = Table(title=f"Ingestion Summary ({summary.adapter_source} adapters)")
    table.add_column("Adapter", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Fetched", justify="right")
    table.add_column("Kept", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Linked", justify="right")
    table.add_column("Hydrated", justify="right")
    table.add_column("Details", style="dim")

    for result in summary.results:
        status = "[green]✓[/green]" if result.success else "[red]✗[/red]"
        hydrated = str(result.hydrated)
        if result.hydration_failed:
            hydrated += f" ([red]{result.hydration_failed} failed[/red])"
        table.add_row(
            result.adapter_id,
            status,
            str(result.fetched),
            str(result.kept),
            str(result.inserted),
            str(result.linked),
            hydrated,
            result.error or f"{result.duration:.1f}s",
        )

    console.print(table)
    console.print(
        f"[bold]{len(summary.results)}[/bold] adapters, "
        f"[green]{summary.inserted}[/green] new sources, "
        f"[red]{len(summary.failed)}[/red] failed, "
        f"{summary.duration:.1f}s"
    )
