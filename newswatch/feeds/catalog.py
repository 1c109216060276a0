"""Seed the feed catalog with the built-in publications and feeds."""

import logging
from typing import Dict, List, NamedTuple, Optional

from psycopg import AsyncConnection

from ..db.feeds import insert_feed
from ..db.publications import ensure_publications
from ..ingestion.guardian_api import SECTION_PATHS
from ..ingestion.models import PublicationHint
from ..ingestion.registry import GUARDIAN_API_KEY
from ..ingestion.rss_adapter import BBC_FEEDS, NPR_FEEDS
from ..models.feed import Feed, FeedKind, FeedSection
from .resolver import DEFAULT_FEED_URL

logger = logging.getLogger(__name__)

GUARDIAN_API_BASE = "https://content.guardianapis.com"

SEED_PUBLICATIONS = [
    PublicationHint(slug="bbc", name="BBC News", domain="bbc.co.uk"),
    PublicationHint(slug="npr", name="NPR", domain="npr.org"),
    PublicationHint(slug="guardian", name="The Guardian", domain="theguardian.com"),
    PublicationHint(slug="reuters", name="Reuters", domain="reuters.com"),
]


class SeedFeed(NamedTuple):
    publication_slug: str
    section: FeedSection
    kind: FeedKind
    url: str
    adapter_key: str
    quality_score: Optional[float] = None


def seed_feeds() -> List[SeedFeed]:
    """Catalog rows mirroring the static adapter set, plus the default feed."""
    seeds = [
        SeedFeed("bbc", section, FeedKind.RSS, BBC_FEEDS[section], "rss", 0.8)
        for section in (
            FeedSection.NEWS,
            FeedSection.POLITICS,
            FeedSection.SCIENCE,
            FeedSection.CULTURE,
        )
    ]
    seeds += [
        SeedFeed("npr", section, FeedKind.RSS, NPR_FEEDS[section], "rss", 0.7)
        for section in (FeedSection.SCIENCE, FeedSection.CULTURE)
    ]
    seeds += [
        SeedFeed(
            "guardian",
            section,
            FeedKind.API,
            f"{GUARDIAN_API_BASE}/{path}",
            GUARDIAN_API_KEY,
            0.8,
        )
        for section, path in SECTION_PATHS.items()
    ]
    seeds.append(
        SeedFeed("reuters", FeedSection.POLITICS, FeedKind.RSS, DEFAULT_FEED_URL, "rss", 0.5)
    )
    return seeds


async def seed_feed_catalog(conn: AsyncConnection) -> Dict[str, int]:
    """
    Insert the built-in publications and feeds, skipping existing rows.

    Returns:
        Statistics dictionary
    """
    stats = {"feeds": 0, "inserted": 0, "skipped": 0}

    async with conn.transaction():
        pub_by_slug = await ensure_publications(conn, SEED_PUBLICATIONS)

        for seed in seed_feeds():
            stats["feeds"] += 1
            publication_id = pub_by_slug.get(seed.publication_slug)
            if publication_id is None:
                logger.warning("Missing publication for slug %s", seed.publication_slug)
                stats["skipped"] += 1
                continue

            inserted = await insert_feed(
                conn,
                Feed(
                    url=seed.url,
                    title=f"{seed.publication_slug.upper()} {seed.section.value}",
                    kind=seed.kind,
                    adapter_key=seed.adapter_key,
                    section=seed.section.value,
                    publication_id=publication_id,
                    quality_score=seed.quality_score,
                    lang="en",
                    region="US",
                ),
            )
            if inserted:
                stats["inserted"] += 1
            else:
                stats["skipped"] += 1

    logger.info(
        "Feed catalog seeded: %d inserted, %d skipped",
        stats["inserted"],
        stats["skipped"],
    )
    return stats
