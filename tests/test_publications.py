"""Tests for publication derivation and resolution."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from newswatch.db.publications import dedupe_hints, derive_publication_from_url, ensure_publications
from newswatch.ingestion.models import PublicationHint


@pytest.mark.parametrize(
    "url, slug, domain",
    [
        ("https://www.bbc.co.uk/news/world-1", "bbc", "bbc.co.uk"),
        ("https://www.bbc.com/news/world-1", "bbc", "bbc.co.uk"),
        ("https://www.npr.org/2024/05/01/story", "npr", "npr.org"),
        ("https://www.theguardian.com/world/story", "guardian", "theguardian.com"),
        ("https://news.example.com/a", "example", "example.com"),
        ("https://www.independent.co.uk/news/uk/story", "independent", "independent.co.uk"),
        ("https://www.telegraph.co.uk/politics/story", "telegraph", "telegraph.co.uk"),
        ("https://www.smh.com.au/world/story", "smh", "smh.com.au"),
    ],
)
def test_derive_publication_from_url(url, slug, domain):
    hint = derive_publication_from_url(url)
    assert hint.slug == slug
    assert hint.domain == domain


def test_unknown_domain_gets_capitalized_name():
    assert derive_publication_from_url("https://reuters.com/x").name == "Reuters"


def test_derive_without_host():
    assert derive_publication_from_url("not a url") is None


def test_dedupe_hints_keeps_first_per_slug():
    first = PublicationHint(slug="bbc", name="BBC News")
    hints = [None, first, PublicationHint(slug="bbc", name="Other"), PublicationHint(slug="npr")]
    assert dedupe_hints(hints) == [first, PublicationHint(slug="npr")]


def fake_conn(*select_results):
    cur = MagicMock()
    cur.execute = AsyncMock()
    cur.executemany = AsyncMock()
    cur.fetchall = AsyncMock(side_effect=list(select_results))
    conn = MagicMock()
    conn.cursor.return_value.__aenter__ = AsyncMock(return_value=cur)
    conn.cursor.return_value.__aexit__ = AsyncMock(return_value=False)
    return conn, cur


@pytest.mark.asyncio
async def test_ensure_publications_empty_input_skips_database():
    conn, cur = fake_conn()
    assert await ensure_publications(conn, [None]) == {}
    cur.execute.assert_not_called()


@pytest.mark.asyncio
async def test_ensure_publications_all_known():
    conn, cur = fake_conn([{"id": 1, "slug": "bbc"}])
    result = await ensure_publications(conn, [PublicationHint(slug="bbc")])

    assert result == {"bbc": 1}
    cur.executemany.assert_not_called()


@pytest.mark.asyncio
async def test_ensure_publications_inserts_missing_and_reselects():
    conn, cur = fake_conn(
        [{"id": 1, "slug": "bbc"}],
        [{"id": 1, "slug": "bbc"}, {"id": 2, "slug": "example"}],
    )
    hints = [PublicationHint(slug="bbc"), PublicationHint(slug="example", domain="example.com")]

    result = await ensure_publications(conn, hints)

    assert result == {"bbc": 1, "example": 2}
    rows = cur.executemany.call_args.args[1]
    assert rows == [("example", "Example", "example.com", "example.com")]
    sql = cur.executemany.call_args.args[0]
    assert "ON CONFLICT (slug) DO NOTHING" in sql


@pytest.mark.asyncio
async def test_ensure_publications_warns_when_domain_is_taken(caplog):
    # "independent" clashes on domain with an existing row under another slug
    conn, cur = fake_conn([], [{"id": 5, "slug": "example"}])
    hints = [
        PublicationHint(slug="example", domain="example.com"),
        PublicationHint(slug="independent", domain="independent.co.uk"),
    ]

    with caplog.at_level(logging.WARNING, logger="newswatch.db.publications"):
        result = await ensure_publications(conn, hints)

    assert result == {"example": 5}
    assert "independent" in caplog.text
    assert [r.levelname for r in caplog.records] == ["WARNING"]
