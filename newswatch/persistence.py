"""Transactional write path for matched articles."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg
from psycopg import AsyncConnection

from .db.publications import derive_publication_from_url
from .db.sources import SourceStorage
from .ingestion.models import (
    Candidate,
    HydrationTarget,
    NormalizedArticle,
    PersistResult,
    PublicationHint,
)
from .ingestion.urls import normalize_url
from .matching import match_articles, prepare_watches
from .models import EventStatus, IngestionEvent

logger = logging.getLogger(__name__)

SOURCE_BATCH_SIZE = 25


def publication_hint(article: NormalizedArticle) -> Optional[PublicationHint]:
    """Adapter-supplied slug wins; otherwise guess from the URL."""
    if article.publication_slug:
        return PublicationHint(slug=article.publication_slug)
    return derive_publication_from_url(article.url)


def event_detail(
    adapter_id: str,
    candidate: Candidate,
    publication_slug: Optional[str],
) -> Dict[str, Any]:
    article = candidate.article
    return {
        "adapter_id": adapter_id,
        "matched_subject_ids": list(candidate.subject_ids),
        "title": article.title,
        "publication_slug": publication_slug,
        "section": article.section,
        "language": article.language,
        "author": article.author,
        "published_at": article.published.isoformat() if article.published else None,
    }


async def _probe_first_row(
    conn: AsyncConnection,
    storage: SourceStorage,
    adapter_id: str,
    row: Dict[str, Any],
) -> None:
    """Retry one row alone so the log shows the real database error."""
    try:
        async with conn.transaction():
            await storage.probe_single_row(conn, row)
    except psycopg.Error as probe_error:
        diag = probe_error.diag
        logger.error(
            "[%s] single-row probe failed for %s: sqlstate=%s primary=%s detail=%s constraint=%s",
            adapter_id,
            row["url"],
            probe_error.sqlstate,
            diag.message_primary,
            diag.message_detail,
            diag.constraint_name,
            extra={"adapter_id": adapter_id, "url": row["url"]},
        )
    else:
        logger.error(
            "[%s] single-row probe for %s succeeded; failure is elsewhere in the batch",
            adapter_id,
            row["url"],
            extra={"adapter_id": adapter_id, "url": row["url"]},
        )


async def _insert_sources(
    conn: AsyncConnection,
    storage: SourceStorage,
    adapter_id: str,
    rows: List[Dict[str, Any]],
    batch_size: int,
) -> None:
    for start in range(0, len(rows), batch_size):
        batch = rows[start:start + batch_size]
        try:
            async with conn.transaction():
                await storage.insert_sources_batch(conn, batch)
        except psycopg.Error as e:
            await _probe_first_row(conn, storage, adapter_id, batch[0])
            logger.error(
                "[%s] source batch insert failed: %s",
                adapter_id,
                e,
                extra={"adapter_id": adapter_id},
            )
            raise


def _dedupe_pairs(
    candidates: Sequence[Candidate],
    id_by_url: Dict[str, int],
) -> List[Tuple[int, int]]:
    pairs: Dict[Tuple[int, int], None] = {}
    for candidate in candidates:
        source_id = id_by_url.get(normalize_url(candidate.article.url))
        if source_id is None:
            continue
        for subject_id in candidate.subject_ids:
            pairs[(subject_id, source_id)] = None
    return list(pairs)


async def _link_subjects(
    conn: AsyncConnection,
    storage: SourceStorage,
    adapter_id: str,
    pairs: List[Tuple[int, int]],
) -> List[Tuple[int, int]]:
    """Insert pairs whose subject and source both still exist; return those."""
    if not pairs:
        return []

    source_ids = await storage.existing_source_ids(conn, sorted({p[1] for p in pairs}))
    subject_ids = await storage.existing_subject_ids(conn, sorted({p[0] for p in pairs}))

    surviving = [p for p in pairs if p[0] in subject_ids and p[1] in source_ids]
    dropped = [p for p in pairs if p not in surviving]
    if dropped:
        more = f" (+{len(dropped) - 5} more)" if len(dropped) > 5 else ""
        logger.warning(
            "[%s] skipping subject/source pairs with missing FK: %s%s",
            adapter_id,
            dropped[:5],
            more,
            extra={"adapter_id": adapter_id},
        )

    await storage.insert_subject_sources(conn, surviving)
    return surviving


async def _write_candidates(
    conn: AsyncConnection,
    storage: SourceStorage,
    adapter_id: str,
    candidates: List[Candidate],
    batch_size: int,
) -> PersistResult:
    urls = [normalize_url(c.article.url) for c in candidates]
    unique_urls = list(dict.fromkeys(urls))
    before = await storage.existing_urls(conn, unique_urls)

    hints = [publication_hint(c.article) for c in candidates]
    pub_by_slug = await storage.ensure_publications(conn, hints)

    rows = []
    for candidate, url, hint in zip(candidates, urls, hints):
        article = candidate.article
        rows.append(
            {
                "url": url,
                "title": article.title,
                "publication_id": pub_by_slug.get(hint.slug) if hint else None,
                "published": article.published,
                "excerpt": article.excerpt,
                "summary": article.summary,
                "author": article.author,
                "html": article.html,
                "section": article.section,
                "language": article.language,
            }
        )
    await _insert_sources(conn, storage, adapter_id, rows, batch_size)

    id_by_url = await storage.ids_for_urls(conn, unique_urls)

    pairs = _dedupe_pairs(candidates, id_by_url)
    linked = await _link_subjects(conn, storage, adapter_id, pairs)

    events = []
    newly_seen = set()
    for candidate, url, hint in zip(candidates, urls, hints):
        is_new = url not in before and url in id_by_url and url not in newly_seen
        if is_new:
            newly_seen.add(url)
        events.append(
            IngestionEvent(
                source_url=url,
                status=EventStatus.INSERTED if is_new else EventStatus.MATCHED,
                detail=event_detail(adapter_id, candidate, hint.slug if hint else None),
                source_id=id_by_url.get(url),
            )
        )
    await storage.insert_events(conn, events)

    batch_ids = [id_by_url[url] for url in unique_urls if url in id_by_url]
    missing_text = await storage.ids_without_text(conn, batch_ids) if batch_ids else set()
    hydrate_targets = [
        HydrationTarget(source_id=id_by_url[url], url=url)
        for url in unique_urls
        if url in id_by_url and id_by_url[url] in missing_text
    ]

    return PersistResult(
        kept=len(candidates),
        inserted=len(newly_seen),
        linked=len(linked),
        hydrate_targets=hydrate_targets,
    )


async def persist_matched_articles(
    conn: AsyncConnection,
    adapter_id: str,
    articles: Sequence[NormalizedArticle],
    storage: Optional[SourceStorage] = None,
    batch_size: int = SOURCE_BATCH_SIZE,
) -> PersistResult:
    """
    Match one adapter batch against enabled watches and persist the matches.

    All writes for the batch happen in one transaction: sources are inserted
    with conflict-on-url ignored, subject links with conflict-on-pair
    ignored, and one audit event is appended per candidate. Running the same
    batch twice leaves the same sources and links and only adds ``matched``
    events.

    Returns:
        Counts plus the batch's sources that still lack full text
    """
    if not articles:
        return PersistResult()

    storage = storage or SourceStorage()

    watches = prepare_watches(await storage.load_enabled_watches(conn))
    candidates = match_articles(articles, watches)
    if not candidates:
        logger.debug("[%s] no article matched any watch", adapter_id)
        return PersistResult()

    async with conn.transaction():
        result = await _write_candidates(conn, storage, adapter_id, candidates, batch_size)

    result.fetched = len(articles)
    return result
