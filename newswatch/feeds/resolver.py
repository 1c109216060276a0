"""Pick catalog feeds for a new or edited watch."""

import logging
import re
from typing import Dict, List

from psycopg import AsyncConnection

from ..db import feeds as feed_store
from ..models.feed import FeedSection

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "http://feeds.reuters.com/reuters/politicsNews"
DEFAULT_RESOLVE_LIMIT = 12
HAYSTACK_LENGTH = 128

SECTION_TRIGGERS = [
    (FeedSection.POLITICS, re.compile(r"politic|election|president|senate|congress|campaign")),
    (FeedSection.SCIENCE, re.compile(r"science|research|study|nasa|physics|biology|ai|ml")),
    (FeedSection.CULTURE, re.compile(r"culture|arts|film|music|book|tv")),
]


def watch_haystack(subject_name: str, query: str) -> str:
    return f"{subject_name} {query}"[:HAYSTACK_LENGTH]


def derive_sections(haystack: str) -> List[str]:
    """Sections suggested by keywords; ``news`` is always included."""
    text = haystack.lower()
    sections = [section.value for section, pattern in SECTION_TRIGGERS if pattern.search(text)]
    sections.append(FeedSection.NEWS.value)
    return sections


async def resolve_feeds_for_watch(
    conn: AsyncConnection,
    subject_name: str,
    query: str,
    limit: int = DEFAULT_RESOLVE_LIMIT,
) -> List[int]:
    """
    Candidate feed ids for a watch, best first.

    Feeds come from two queries (section match and title match); each id
    keeps the best score it was seen with. When both come back empty the
    default catalog feed is returned so a watch never ends up feedless.
    """
    haystack = watch_haystack(subject_name, query)
    sections = derive_sections(haystack)

    section_rows = await feed_store.feeds_by_sections(conn, sections, limit)
    title_rows = await feed_store.feeds_by_title(conn, haystack, limit)

    best: Dict[int, float] = {}
    for row in [*section_rows, *title_rows]:
        score = row["score"] if row["score"] is not None else 0.0
        if row["id"] not in best or score > best[row["id"]]:
            best[row["id"]] = score

    if not best:
        fallback = await feed_store.feed_id_by_url(conn, DEFAULT_FEED_URL)
        if fallback is None:
            logger.warning("No feeds matched %r and the default feed is missing", haystack)
            return []
        logger.info("No feeds matched %r, using default feed %s", haystack, fallback)
        return [fallback]

    ranked = sorted(best.items(), key=lambda item: item[1], reverse=True)
    return [feed_id for feed_id, _ in ranked[:limit]]
