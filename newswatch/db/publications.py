"""Publication resolution: hint to stored publication id."""

import logging
from typing import Dict, Iterable, List, Optional

import tldextract
from psycopg import AsyncConnection

from ..ingestion.models import PublicationHint
from ..ingestion.urls import host_of

logger = logging.getLogger(__name__)

# Bundled public suffix snapshot only, never fetched at runtime
_extract_domain = tldextract.TLDExtract(suffix_list_urls=())

# Domain suffix -> canonical publication
KNOWN_PUBLICATIONS: Dict[str, PublicationHint] = {
    "bbc.co.uk": PublicationHint(slug="bbc", name="BBC News", domain="bbc.co.uk"),
    "bbc.com": PublicationHint(slug="bbc", name="BBC News", domain="bbc.co.uk"),
    "npr.org": PublicationHint(slug="npr", name="NPR", domain="npr.org"),
    "theguardian.com": PublicationHint(
        slug="guardian", name="The Guardian", domain="theguardian.com"
    ),
    "guardian.co.uk": PublicationHint(
        slug="guardian", name="The Guardian", domain="theguardian.com"
    ),
}


def derive_publication_from_url(url: str) -> Optional[PublicationHint]:
    """
    Guess the publication of an article from its URL.

    Known outlets come from a fixed domain table; anything else uses the
    registrable domain (``independent.co.uk``, ``smh.com.au``) as domain and
    its first label as slug.
    """
    host = host_of(url)
    if not host:
        return None

    for domain, hint in KNOWN_PUBLICATIONS.items():
        if host == domain or host.endswith(f".{domain}"):
            return hint

    parts = _extract_domain(host)
    slug = parts.domain
    if not slug:
        return None
    domain = f"{slug}.{parts.suffix}" if parts.suffix else slug
    return PublicationHint(slug=slug, name=slug[0].upper() + slug[1:], domain=domain)


def dedupe_hints(hints: Iterable[Optional[PublicationHint]]) -> List[PublicationHint]:
    """Keep the first hint per slug, skipping missing ones."""
    seen = set()
    result = []
    for hint in hints:
        if hint is None or hint.slug in seen:
            continue
        seen.add(hint.slug)
        result.append(hint)
    return result


async def _ids_by_slug(conn: AsyncConnection, slugs: List[str]) -> Dict[str, int]:
    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT id, slug FROM publications WHERE slug = ANY(%s)",
            (slugs,),
        )
        return {row["slug"]: row["id"] for row in await cur.fetchall()}


async def ensure_publications(
    conn: AsyncConnection,
    hints: Iterable[Optional[PublicationHint]],
) -> Dict[str, int]:
    """
    Resolve hints to publication ids, inserting the missing ones.

    Returns:
        Mapping of slug to publication id
    """
    wanted = dedupe_hints(hints)
    if not wanted:
        return {}

    slugs = [hint.slug for hint in wanted]
    by_slug = await _ids_by_slug(conn, slugs)

    missing = [hint for hint in wanted if hint.slug not in by_slug]
    if not missing:
        return by_slug

    rows = []
    for hint in missing:
        name = hint.name or hint.slug[0].upper() + hint.slug[1:]
        domain = hint.domain or f"{hint.slug}.com"
        rows.append((hint.slug, name, domain, domain))

    async with conn.cursor() as cur:
        # publications.domain is unique too; a hint whose domain is taken is skipped
        await cur.executemany(
            """
            INSERT INTO publications (slug, name, domain)
            SELECT %s, %s, %s
            WHERE NOT EXISTS (SELECT 1 FROM publications WHERE domain = %s)
            ON CONFLICT (slug) DO NOTHING
            """,
            rows,
        )
    logger.info("Inserted publications: %s", ", ".join(hint.slug for hint in missing))

    # Re-select so rows created by a concurrent run are included
    by_slug = await _ids_by_slug(conn, slugs)
    unresolved = [slug for slug in slugs if slug not in by_slug]
    if unresolved:
        logger.warning(
            "Publications not resolved, domain already taken: %s", ", ".join(unresolved)
        )
    return by_slug
