"""Feed catalog storage."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from psycopg import AsyncConnection
from psycopg.types.json import Jsonb

from ..models.feed import Feed, FeedKind

logger = logging.getLogger(__name__)

FEED_SELECT = """
    SELECT f.id, f.url, f.title, f.kind, f.adapter_key, f.section,
           f.publication_id, p.slug AS publication_slug, f.quality_score,
           f.params, f.lang, f.region, f.enabled, f.created_at
    FROM feeds f
    LEFT JOIN publications p ON p.id = f.publication_id
"""


def infer_feed_kind(url: str) -> Tuple[FeedKind, Optional[str]]:
    """Catalog kind and adapter key for a bare feed URL."""
    lowered = url.lower()
    if "content.guardianapis.com" in lowered:
        return FeedKind.API, "guardian-api"
    if lowered.endswith(".atom") or "/atom" in lowered:
        return FeedKind.ATOM, "atom"
    return FeedKind.RSS, "rss"


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def load_enabled_feeds(conn: AsyncConnection) -> List[Feed]:
    """Enabled catalog rows with their publication slug."""
    async with conn.cursor() as cur:
        await cur.execute(FEED_SELECT + " WHERE f.enabled ORDER BY f.id")
        return [Feed.model_validate(row) for row in await cur.fetchall()]


async def list_feeds(conn: AsyncConnection) -> List[Feed]:
    async with conn.cursor() as cur:
        await cur.execute(FEED_SELECT + " ORDER BY p.slug NULLS LAST, f.section, f.id")
        return [Feed.model_validate(row) for row in await cur.fetchall()]


async def feeds_by_sections(
    conn: AsyncConnection,
    sections: Sequence[str],
    limit: int,
) -> List[Dict[str, Any]]:
    """``{id, score}`` rows for feeds in any of ``sections``, best first."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT id, quality_score AS score
            FROM feeds
            WHERE section = ANY(%s)
            ORDER BY quality_score DESC NULLS LAST
            LIMIT %s
            """,
            (list(sections), limit),
        )
        return await cur.fetchall()


async def feeds_by_title(conn: AsyncConnection, text: str, limit: int) -> List[Dict[str, Any]]:
    """``{id, score}`` rows for feeds whose title contains ``text``, best first."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT id, quality_score AS score
            FROM feeds
            WHERE title ILIKE %s
            ORDER BY quality_score DESC NULLS LAST
            LIMIT %s
            """,
            (f"%{escape_like(text)}%", limit),
        )
        return await cur.fetchall()


async def feed_id_by_url(conn: AsyncConnection, url: str) -> Optional[int]:
    async with conn.cursor() as cur:
        await cur.execute("SELECT id FROM feeds WHERE url = %s LIMIT 1", (url,))
        row = await cur.fetchone()
        return row["id"] if row else None


async def insert_feed(conn: AsyncConnection, feed: Feed) -> bool:
    """Insert a catalog row unless its url exists. Returns True if inserted."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO feeds (
                url, title, kind, adapter_key, section, publication_id,
                quality_score, params, lang, region, enabled
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (url) DO NOTHING
            """,
            (
                feed.url,
                feed.title,
                feed.kind.value,
                feed.adapter_key,
                feed.section,
                feed.publication_id,
                feed.quality_score,
                Jsonb(feed.params) if feed.params else None,
                feed.lang,
                feed.region,
                feed.enabled,
            ),
        )
        return cur.rowcount > 0


async def ensure_feeds_exist(conn: AsyncConnection, urls: Iterable[str]) -> Dict[str, int]:
    """
    Make sure each url has a catalog row.

    Missing rows get a kind and adapter key inferred from the url.

    Returns:
        Mapping of url to feed id
    """
    wanted = list(dict.fromkeys(url.strip() for url in urls if url and url.strip()))
    if not wanted:
        return {}

    async with conn.cursor() as cur:
        await cur.execute("SELECT id, url FROM feeds WHERE url = ANY(%s)", (wanted,))
        by_url = {row["url"]: row["id"] for row in await cur.fetchall()}

    for url in wanted:
        if url in by_url:
            continue
        kind, adapter_key = infer_feed_kind(url)
        await insert_feed(conn, Feed(url=url, title=url, kind=kind, adapter_key=adapter_key))
        logger.info("Added feed %s (%s)", url, kind.value)

    async with conn.cursor() as cur:
        await cur.execute("SELECT id, url FROM feeds WHERE url = ANY(%s)", (wanted,))
        return {row["url"]: row["id"] for row in await cur.fetchall()}


async def replace_watch_feeds(
    conn: AsyncConnection,
    watch_id: int,
    feed_ids: Sequence[int],
) -> None:
    """Replace the feed-link set of a watch (delete then insert)."""
    async with conn.cursor() as cur:
        await cur.execute("DELETE FROM subject_feeds WHERE watch_id = %s", (watch_id,))
    await link_watch_feeds(conn, watch_id, feed_ids)


async def link_watch_feeds(
    conn: AsyncConnection,
    watch_id: int,
    feed_ids: Sequence[int],
) -> None:
    if not feed_ids:
        return
    async with conn.cursor() as cur:
        await cur.executemany(
            """
            INSERT INTO subject_feeds (watch_id, feed_id)
            VALUES (%s, %s)
            ON CONFLICT (watch_id, feed_id) DO NOTHING
            """,
            [(watch_id, feed_id) for feed_id in dict.fromkeys(feed_ids)],
        )
