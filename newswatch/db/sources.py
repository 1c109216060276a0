"""Source storage: the SQL behind persistence and hydration."""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from psycopg import AsyncConnection
from psycopg.types.json import Jsonb

from ..ingestion.models import HydrationTarget, PublicationHint
from ..models import IngestionEvent
from .publications import ensure_publications

SOURCE_COLUMNS = (
    "url",
    "title",
    "publication_id",
    "published",
    "excerpt",
    "summary",
    "author",
    "html",
    "section",
    "language",
)


class SourceStorage:
    """
    Handle source rows, match links and audit events.

    One method per statement; every method takes the connection so callers
    decide the transaction scope.
    """

    async def load_enabled_watches(self, conn: AsyncConnection) -> List[Dict[str, Any]]:
        """Enabled watches as ``{subject_id, query, enabled}`` rows."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT subject_id, query, enabled
                FROM subject_watches
                WHERE enabled
                """
            )
            return await cur.fetchall()

    async def ensure_publications(
        self,
        conn: AsyncConnection,
        hints: Iterable[Optional[PublicationHint]],
    ) -> Dict[str, int]:
        return await ensure_publications(conn, hints)

    async def existing_urls(self, conn: AsyncConnection, urls: Sequence[str]) -> Set[str]:
        """Which of ``urls`` already exist as sources."""
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT url FROM sources WHERE url = ANY(%s)",
                (list(urls),),
            )
            return {row["url"] for row in await cur.fetchall()}

    async def insert_sources_batch(
        self,
        conn: AsyncConnection,
        rows: Sequence[Dict[str, Any]],
    ) -> None:
        """Insert new sources; rows whose url already exists are left untouched."""
        columns = ", ".join(SOURCE_COLUMNS)
        placeholders = ", ".join(["%s"] * len(SOURCE_COLUMNS))
        async with conn.cursor() as cur:
            await cur.executemany(
                f"""
                INSERT INTO sources ({columns})
                VALUES ({placeholders})
                ON CONFLICT (url) DO NOTHING
                """,
                [tuple(row.get(column) for column in SOURCE_COLUMNS) for row in rows],
            )

    async def probe_single_row(self, conn: AsyncConnection, row: Dict[str, Any]) -> None:
        """Minimal direct insert of one row, used only to surface a failure's detail."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO sources (url, title, published, publication_id)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (url) DO NOTHING
                """,
                (row["url"], row["title"], row["published"], row.get("publication_id")),
            )

    async def ids_for_urls(self, conn: AsyncConnection, urls: Sequence[str]) -> Dict[str, int]:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, url FROM sources WHERE url = ANY(%s)",
                (list(urls),),
            )
            return {row["url"]: row["id"] for row in await cur.fetchall()}

    async def existing_source_ids(self, conn: AsyncConnection, ids: Sequence[int]) -> Set[int]:
        async with conn.cursor() as cur:
            await cur.execute("SELECT id FROM sources WHERE id = ANY(%s)", (list(ids),))
            return {row["id"] for row in await cur.fetchall()}

    async def existing_subject_ids(self, conn: AsyncConnection, ids: Sequence[int]) -> Set[int]:
        async with conn.cursor() as cur:
            await cur.execute("SELECT id FROM subjects WHERE id = ANY(%s)", (list(ids),))
            return {row["id"] for row in await cur.fetchall()}

    async def insert_subject_sources(
        self,
        conn: AsyncConnection,
        pairs: Sequence[Tuple[int, int]],
    ) -> None:
        """Link (subject_id, source_id) pairs; the joins drop rows whose FK vanished."""
        if not pairs:
            return
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO subject_sources (subject_id, source_id)
                SELECT v.subject_id, v.source_id
                FROM unnest(%s::int[], %s::int[]) AS v(subject_id, source_id)
                JOIN subjects sub ON sub.id = v.subject_id
                JOIN sources s ON s.id = v.source_id
                ON CONFLICT (subject_id, source_id) DO NOTHING
                """,
                ([subject_id for subject_id, _ in pairs], [source_id for _, source_id in pairs]),
            )

    async def insert_events(
        self,
        conn: AsyncConnection,
        events: Sequence[IngestionEvent],
    ) -> None:
        if not events:
            return
        async with conn.cursor() as cur:
            await cur.executemany(
                """
                INSERT INTO ingestion_events (source_url, status, detail, source_id)
                VALUES (%s, %s, %s, %s)
                """,
                [
                    (event.source_url, event.status.value, Jsonb(event.detail), event.source_id)
                    for event in events
                ],
            )

    async def ids_without_text(self, conn: AsyncConnection, ids: Sequence[int]) -> Set[int]:
        """Which of ``ids`` have no article_texts row yet."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT s.id
                FROM sources s
                LEFT JOIN article_texts t ON t.source_id = s.id
                WHERE s.id = ANY(%s) AND t.source_id IS NULL
                """,
                (list(ids),),
            )
            return {row["id"] for row in await cur.fetchall()}

    async def get_source_meta(
        self,
        conn: AsyncConnection,
        source_id: int,
    ) -> Optional[Dict[str, Any]]:
        """Feed-supplied metadata the hydrator must not clobber."""
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, author, excerpt, title FROM sources WHERE id = %s",
                (source_id,),
            )
            return await cur.fetchone()

    async def upsert_article_text(
        self,
        conn: AsyncConnection,
        source_id: int,
        text: str,
        html: Optional[str],
    ) -> None:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO article_texts (source_id, text, html)
                VALUES (%s, %s, %s)
                ON CONFLICT (source_id) DO UPDATE SET
                    text = EXCLUDED.text,
                    html = COALESCE(EXCLUDED.html, article_texts.html)
                """,
                (source_id, text, html),
            )

    async def update_source_enrichment(
        self,
        conn: AsyncConnection,
        source_id: int,
        word_count: int,
        text_hash: str,
        sentiment: float,
        author: Optional[str] = None,
        excerpt: Optional[str] = None,
    ) -> None:
        """Always set the computed fields; author/excerpt only fill NULLs."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE sources
                SET word_count = %s,
                    text_hash = %s,
                    sentiment = %s,
                    author = COALESCE(author, %s),
                    excerpt = COALESCE(excerpt, %s)
                WHERE id = %s
                """,
                (word_count, text_hash, sentiment, author, excerpt, source_id),
            )

    async def find_same_hash(
        self,
        conn: AsyncConnection,
        text_hash: str,
        source_id: int,
    ) -> Optional[int]:
        """Id of another source carrying the same content hash, if any."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id FROM sources
                WHERE text_hash = %s AND id <> %s
                ORDER BY id
                LIMIT 1
                """,
                (text_hash, source_id),
            )
            row = await cur.fetchone()
            return row["id"] if row else None

    async def load_hydration_backlog(
        self,
        conn: AsyncConnection,
        limit: int = 15,
    ) -> List[HydrationTarget]:
        """Newest sources that still lack full text."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT s.id, s.url
                FROM sources s
                LEFT JOIN article_texts t ON t.source_id = s.id
                WHERE t.source_id IS NULL
                ORDER BY s.published DESC, s.id DESC
                LIMIT %s
                """,
                (limit,),
            )
            return [
                HydrationTarget(source_id=row["id"], url=row["url"])
                for row in await cur.fetchall()
            ]
