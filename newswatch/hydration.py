"""Hydration worker: full text, hash, word count and sentiment for stub sources."""

import copy
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import httpx
import trafilatura
from bs4 import BeautifulSoup
from psycopg_pool import AsyncConnectionPool

from .config.models import HttpConfig
from .db.sources import SourceStorage
from .errors import ArticleFetchError, ExtractionError, HydrationError
from .ingestion.article_fetcher import FetchStatus, fetch_article_html
from .ingestion.models import HydrationTarget
from .sentiment import score_sentiment

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 240
HYDRATION_FALLBACK_LIMIT = 15


@dataclass
class ExtractedContent:
    """Readable content pulled out of an article page."""

    text: str
    html: Optional[str] = None
    author: Optional[str] = None
    title: Optional[str] = None


@dataclass
class HydrationResult:
    source_id: int
    word_count: int
    text_hash: str
    sentiment: float
    fetch_status: FetchStatus
    duplicate_of: Optional[int] = None


@dataclass
class HydrationStats:
    """Counts from one hydrator pass."""

    attempted: int = 0
    hydrated: int = 0
    failed: int = 0


def strip_stylesheets(html: str) -> str:
    """Remove ``<style>`` blocks and stylesheet ``<link>`` tags."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all("style"):
        tag.decompose()
    for tag in soup.find_all("link"):
        # bs4 splits rel into a list of tokens
        if "stylesheet" in [token.lower() for token in tag.get("rel") or []]:
            tag.decompose()
    return str(soup)


def parse_document(html: str) -> Any:
    """
    Parse HTML into an lxml tree.

    If the first parse fails, stylesheets are stripped and the parse is
    retried once.
    """
    tree = trafilatura.load_html(html)
    if tree is None:
        logger.debug("HTML parse failed, retrying without stylesheets")
        tree = trafilatura.load_html(strip_stylesheets(html))
    if tree is None:
        raise ExtractionError("Could not parse article HTML")
    return tree


def extract_readable(tree: Any, url: Optional[str] = None) -> ExtractedContent:
    """Run boilerplate removal over a parsed page."""
    # trafilatura prunes the tree it is given, so each pass gets its own copy
    document = trafilatura.bare_extraction(
        copy.deepcopy(tree),
        url=url,
        with_metadata=True,
        include_comments=False,
    )
    text = ((document.text if document is not None else None) or "").strip()
    if not text:
        raise ExtractionError(f"No readable text extracted from {url or 'document'}")

    content_html = trafilatura.extract(
        copy.deepcopy(tree),
        url=url,
        output_format="html",
        include_comments=False,
    )
    return ExtractedContent(
        text=text,
        html=content_html or None,
        author=(document.author or None),
        title=(document.title or None),
    )


def word_count(text: str) -> int:
    return len(text.split())


def content_hash(text: str) -> str:
    """SHA-256 hex digest of the extracted text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def excerpt_from(text: str, length: int = EXCERPT_LENGTH) -> str:
    """Whitespace-collapsed prefix of the text."""
    return " ".join(text.split())[:length]


async def hydrate_source(
    pool: AsyncConnectionPool,
    client: httpx.AsyncClient,
    target: HydrationTarget,
    http: Optional[HttpConfig] = None,
    storage: Optional[SourceStorage] = None,
) -> HydrationResult:
    """
    Fetch, extract and store full text for one source.

    Feed-supplied author and excerpt are kept; they are only filled in when
    the source has none.

    Raises:
        HydrationError: fetch, parse or extraction failed for this target
    """
    http = http or HttpConfig()
    storage = storage or SourceStorage()

    outcome = await fetch_article_html(
        client,
        target.url,
        user_agent=http.user_agent,
        timeout=http.article_timeout,
    )
    if not outcome.ok:
        raise ArticleFetchError(target.url, outcome.error or outcome.status.value)

    tree = parse_document(outcome.html)
    content = extract_readable(tree, outcome.final_url or target.url)

    words = word_count(content.text)
    digest = content_hash(content.text)
    sentiment = score_sentiment(content.text)

    async with pool.connection() as conn:
        meta = await storage.get_source_meta(conn, target.source_id)
        if meta is None:
            raise HydrationError(f"Source {target.source_id} no longer exists")

        author = content.author if not meta.get("author") else None
        excerpt = excerpt_from(content.text) if not meta.get("excerpt") else None

        async with conn.transaction():
            await storage.upsert_article_text(conn, target.source_id, content.text, content.html)
            await storage.update_source_enrichment(
                conn,
                target.source_id,
                word_count=words,
                text_hash=digest,
                sentiment=sentiment,
                author=author,
                excerpt=excerpt,
            )

        duplicate_of = await storage.find_same_hash(conn, digest, target.source_id)

    if duplicate_of is not None:
        logger.warning(
            "Source %s has the same content as source %s",
            target.source_id,
            duplicate_of,
            extra={"source_id": target.source_id, "url": target.url},
        )

    logger.info(
        "Hydrated source %s (%d words, sentiment %.2f)",
        target.source_id,
        words,
        sentiment,
        extra={"source_id": target.source_id, "url": target.url},
    )
    return HydrationResult(
        source_id=target.source_id,
        word_count=words,
        text_hash=digest,
        sentiment=sentiment,
        fetch_status=outcome.status,
        duplicate_of=duplicate_of,
    )


async def run_hydrator_once(
    pool: AsyncConnectionPool,
    client: httpx.AsyncClient,
    targets: Optional[Sequence[HydrationTarget]] = None,
    http: Optional[HttpConfig] = None,
    fallback_limit: int = HYDRATION_FALLBACK_LIMIT,
    storage: Optional[SourceStorage] = None,
) -> HydrationStats:
    """
    Hydrate targets one at a time.

    Without explicit targets, the newest sources lacking full text are
    loaded. A failing target is logged and skipped.
    """
    storage = storage or SourceStorage()

    if targets is None:
        async with pool.connection() as conn:
            targets = await storage.load_hydration_backlog(conn, fallback_limit)

    pending: List[HydrationTarget] = list(targets)
    stats = HydrationStats()
    for target in pending:
        stats.attempted += 1
        try:
            await hydrate_source(pool, client, target, http=http, storage=storage)
            stats.hydrated += 1
        except Exception as e:
            stats.failed += 1
            logger.warning(
                "Hydration failed for source %s (%s): %s",
                target.source_id,
                target.url,
                e,
                extra={"source_id": target.source_id, "url": target.url},
            )

    return stats
