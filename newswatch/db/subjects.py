"""Subject and watch storage, including the read side used by the CLI."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg import AsyncConnection
from pydantic import BaseModel, Field

from ..models import Subject, SubjectType, Watch


class SubjectSummary(Subject):
    """Subject row plus aggregate counts."""

    watches_count: int = 0
    sources_count: int = 0


class WatchDetail(Watch):
    """Watch with its linked catalog feeds."""

    feeds: List[Dict[str, Any]] = Field(default_factory=list)


class MatchedArticle(BaseModel):
    """A source matched to a subject, as shown on the subject page."""

    id: int
    url: str
    title: str
    published: datetime
    publication_slug: Optional[str] = None
    publication_name: Optional[str] = None
    author: Optional[str] = None
    excerpt: Optional[str] = None
    sentiment: Optional[float] = None
    word_count: Optional[int] = None
    text: Optional[str] = None


class SubjectDetail(BaseModel):
    subject: Subject
    watches: List[WatchDetail] = Field(default_factory=list)
    articles: List[MatchedArticle] = Field(default_factory=list)


class SubjectStorage:
    """Manage subjects and watches in database."""

    async def get_subject_by_id(self, conn: AsyncConnection, subject_id: int) -> Optional[Subject]:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, slug, name, type, created_at FROM subjects WHERE id = %s",
                (subject_id,),
            )
            row = await cur.fetchone()
            return Subject.model_validate(row) if row else None

    async def get_subject_by_name(self, conn: AsyncConnection, name: str) -> Optional[Subject]:
        """Case-insensitive lookup; the oldest subject wins on ties."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, slug, name, type, created_at
                FROM subjects
                WHERE lower(name) = lower(%s)
                ORDER BY id
                LIMIT 1
                """,
                (name,),
            )
            row = await cur.fetchone()
            return Subject.model_validate(row) if row else None

    async def upsert_subject(
        self,
        conn: AsyncConnection,
        name: str,
        subject_type: SubjectType,
        slug: str,
    ) -> Tuple[Subject, bool]:
        """
        Insert a subject or touch the existing row with the same slug.

        Returns:
            Tuple of (subject, is_new)
        """
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO subjects (slug, name, type)
                VALUES (%s, %s, %s)
                ON CONFLICT (slug) DO UPDATE SET updated_at = CURRENT_TIMESTAMP
                RETURNING id, slug, name, type, created_at, (xmax = 0) AS is_new
                """,
                (slug, name, subject_type.value),
            )
            row = await cur.fetchone()
            is_new = bool(row.pop("is_new"))
            return Subject.model_validate(row), is_new

    async def insert_watch(
        self,
        conn: AsyncConnection,
        subject_id: int,
        query: str,
        enabled: bool = True,
    ) -> Watch:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO subject_watches (subject_id, query, enabled)
                VALUES (%s, %s, %s)
                RETURNING id, subject_id, query, enabled, created_at
                """,
                (subject_id, query, enabled),
            )
            return Watch.model_validate(await cur.fetchone())

    async def update_watch_query(
        self,
        conn: AsyncConnection,
        watch_id: int,
        query: str,
    ) -> Optional[Watch]:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE subject_watches
                SET query = %s
                WHERE id = %s
                RETURNING id, subject_id, query, enabled, created_at
                """,
                (query, watch_id),
            )
            row = await cur.fetchone()
            return Watch.model_validate(row) if row else None

    async def list_subjects(self, conn: AsyncConnection) -> List[SubjectSummary]:
        """All subjects, newest first, with enabled-watch and distinct-source counts."""
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    s.id, s.slug, s.name, s.type, s.created_at,
                    COALESCE(w.watches_count, 0) AS watches_count,
                    COALESCE(ss.sources_count, 0) AS sources_count
                FROM subjects s
                LEFT JOIN (
                    SELECT subject_id,
                           SUM(CASE WHEN enabled THEN 1 ELSE 0 END) AS watches_count
                    FROM subject_watches
                    GROUP BY subject_id
                ) w ON w.subject_id = s.id
                LEFT JOIN (
                    SELECT subject_id, COUNT(DISTINCT source_id) AS sources_count
                    FROM subject_sources
                    GROUP BY subject_id
                ) ss ON ss.subject_id = s.id
                ORDER BY s.created_at DESC, s.id DESC
                """
            )
            return [SubjectSummary.model_validate(row) for row in await cur.fetchall()]

    async def get_subject_detail(
        self,
        conn: AsyncConnection,
        slug: str,
        articles_limit: int = 10,
        feeds_per_watch_limit: int = 50,
    ) -> Optional[SubjectDetail]:
        """Subject with its watches (and linked feeds) and newest matched articles."""
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, slug, name, type, created_at FROM subjects WHERE slug = %s",
                (slug,),
            )
            row = await cur.fetchone()
            if row is None:
                return None
            subject = Subject.model_validate(row)

            await cur.execute(
                """
                SELECT id, subject_id, query, enabled, created_at
                FROM subject_watches
                WHERE subject_id = %s
                ORDER BY id
                """,
                (subject.id,),
            )
            watches = [WatchDetail.model_validate(r) for r in await cur.fetchall()]

            for watch in watches:
                await cur.execute(
                    """
                    SELECT f.id, f.url, f.title, f.section, f.kind, f.lang, f.region,
                           f.publication_id
                    FROM subject_feeds sf
                    JOIN feeds f ON f.id = sf.feed_id
                    WHERE sf.watch_id = %s
                    ORDER BY f.quality_score DESC NULLS LAST, f.id
                    LIMIT %s
                    """,
                    (watch.id, feeds_per_watch_limit),
                )
                watch.feeds = await cur.fetchall()

            await cur.execute(
                """
                SELECT s.id, s.url, s.title, s.published, s.author, s.excerpt,
                       s.sentiment, s.word_count,
                       p.slug AS publication_slug, p.name AS publication_name,
                       t.text
                FROM subject_sources ss
                JOIN sources s ON s.id = ss.source_id
                LEFT JOIN publications p ON p.id = s.publication_id
                LEFT JOIN article_texts t ON t.source_id = s.id
                WHERE ss.subject_id = %s
                ORDER BY s.published DESC, s.id DESC
                LIMIT %s
                """,
                (subject.id, articles_limit),
            )
            articles = [MatchedArticle.model_validate(r) for r in await cur.fetchall()]

        return SubjectDetail(subject=subject, watches=watches, articles=articles)
