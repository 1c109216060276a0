"""Tests for the hydration worker."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from conftest import InMemoryStorage

from newswatch.errors import ArticleFetchError, ExtractionError, HydrationError
from newswatch.hydration import (
    ExtractedContent,
    content_hash,
    excerpt_from,
    extract_readable,
    hydrate_source,
    parse_document,
    run_hydrator_once,
    strip_stylesheets,
    word_count,
)
from newswatch.ingestion.article_fetcher import FetchOutcome, FetchStatus
from newswatch.ingestion.models import HydrationTarget

PARAGRAPH = (
    "Scientists at the institute said on Tuesday that the new climate model "
    "showed a clear improvement in regional rainfall forecasts across the study area. "
)

ARTICLE_HTML = f"""<!DOCTYPE html>
<html>
  <head>
    <title>New climate model improves forecasts</title>
    <meta name="author" content="Jane Reporter">
    <style>body {{ color: red; }}</style>
  </head>
  <body>
    <nav><a href="/">Home</a> <a href="/news">News</a></nav>
    <article>
      <h1>New climate model improves forecasts</h1>
      <p>{PARAGRAPH * 3}</p>
      <p>{PARAGRAPH * 3}</p>
      <p>{PARAGRAPH * 3}</p>
    </article>
    <footer>Copyright Example News</footer>
  </body>
</html>
"""

LONG_TEXT = " ".join(["word"] * 300)


def ok_outcome(url="https://www.example.com/a", html="<html></html>"):
    return FetchOutcome(status=FetchStatus.SUCCESS, url=url, html=html, final_url=url)


def extracted(text=LONG_TEXT, author="Byline Person"):
    return ExtractedContent(text=text, html="<p>body</p>", author=author, title="Title")


@pytest.fixture
def storage():
    store = InMemoryStorage()
    store.add_source("https://www.example.com/a")
    return store


def test_strip_stylesheets():
    html = (
        '<head><link rel="stylesheet" href="a.css"><link rel="icon" href="i.png">'
        "<STYLE type='text/css'>p {}</STYLE><link rel='Alternate Stylesheet' href='b.css'>"
        "</head><body><p>Body &gt; text</p></body>"
    )
    stripped = strip_stylesheets(html)

    assert "a.css" not in stripped
    assert "b.css" not in stripped
    assert "p {}" not in stripped
    assert 'href="i.png"' in stripped
    assert "<p>Body &gt; text</p>" in stripped


def test_parse_and_extract_article_page():
    tree = parse_document(ARTICLE_HTML)
    content = extract_readable(tree, "https://www.example.com/a")

    assert "regional rainfall forecasts" in content.text
    assert "Copyright Example News" not in content.text
    assert content.html is not None
    # the tree is not consumed by extraction
    assert extract_readable(tree).text == content.text


def test_parse_empty_document_raises():
    with pytest.raises(ExtractionError):
        parse_document("")


def test_extract_without_text_raises():
    tree = parse_document("<html><body><div></div></body></html>")
    with pytest.raises(ExtractionError):
        extract_readable(tree)


def test_text_metrics():
    assert word_count("one  two\nthree") == 3
    assert content_hash("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert excerpt_from("a  b\n c") == "a b c"
    assert len(excerpt_from(LONG_TEXT)) == 240


@pytest.mark.asyncio
async def test_hydrate_fills_missing_author_and_excerpt(pool, storage):
    target = HydrationTarget(source_id=1, url="https://www.example.com/a")
    with patch(
        "newswatch.hydration.fetch_article_html", AsyncMock(return_value=ok_outcome())
    ), patch("newswatch.hydration.parse_document"), patch(
        "newswatch.hydration.extract_readable", return_value=extracted()
    ):
        result = await hydrate_source(pool, None, target, storage=storage)

    row = storage.source_by_id(1)
    assert row["author"] == "Byline Person"
    assert len(row["excerpt"]) == 240
    assert row["word_count"] == 300
    assert row["text_hash"] == content_hash(LONG_TEXT)
    assert storage.article_texts[1] == {"text": LONG_TEXT, "html": "<p>body</p>"}
    assert result.word_count == 300
    assert result.fetch_status is FetchStatus.SUCCESS
    assert result.duplicate_of is None


@pytest.mark.asyncio
async def test_hydrate_keeps_feed_author_and_excerpt(pool):
    storage = InMemoryStorage()
    storage.add_source("https://www.example.com/a", author="Feed Author", excerpt="Feed excerpt")
    target = HydrationTarget(source_id=1, url="https://www.example.com/a")

    with patch(
        "newswatch.hydration.fetch_article_html", AsyncMock(return_value=ok_outcome())
    ), patch("newswatch.hydration.parse_document"), patch(
        "newswatch.hydration.extract_readable", return_value=extracted()
    ):
        await hydrate_source(pool, None, target, storage=storage)

    row = storage.source_by_id(1)
    assert row["author"] == "Feed Author"
    assert row["excerpt"] == "Feed excerpt"


@pytest.mark.asyncio
async def test_duplicate_text_is_reported_not_merged(pool, storage, caplog):
    storage.add_source("https://www.example.com/b", text_hash=content_hash(LONG_TEXT))
    target = HydrationTarget(source_id=1, url="https://www.example.com/a")

    with patch(
        "newswatch.hydration.fetch_article_html", AsyncMock(return_value=ok_outcome())
    ), patch("newswatch.hydration.parse_document"), patch(
        "newswatch.hydration.extract_readable", return_value=extracted()
    ):
        result = await hydrate_source(pool, None, target, storage=storage)

    assert result.duplicate_of == 2
    assert len(storage.sources) == 2
    assert "same content" in caplog.text


@pytest.mark.asyncio
async def test_fatal_fetch_raises(pool, storage):
    outcome = FetchOutcome(status=FetchStatus.FATAL, url="u", error="Article not found (404)")
    target = HydrationTarget(source_id=1, url="https://www.example.com/a")

    with patch("newswatch.hydration.fetch_article_html", AsyncMock(return_value=outcome)):
        with pytest.raises(ArticleFetchError, match="404"):
            await hydrate_source(pool, None, target, storage=storage)

    assert storage.article_texts == {}


@pytest.mark.asyncio
async def test_missing_source_raises(pool):
    target = HydrationTarget(source_id=42, url="https://www.example.com/gone")
    with patch(
        "newswatch.hydration.fetch_article_html", AsyncMock(return_value=ok_outcome())
    ), patch("newswatch.hydration.parse_document"), patch(
        "newswatch.hydration.extract_readable", return_value=extracted()
    ):
        with pytest.raises(HydrationError):
            await hydrate_source(pool, None, target, storage=InMemoryStorage())


@pytest.mark.asyncio
async def test_run_continues_past_failures(pool, storage):
    storage.add_source("https://www.example.com/b")
    targets = [
        HydrationTarget(source_id=1, url="https://www.example.com/a"),
        HydrationTarget(source_id=2, url="https://www.example.com/b"),
    ]
    fetch = AsyncMock(
        side_effect=[FetchOutcome(status=FetchStatus.FATAL, url="a", error="boom"), ok_outcome()]
    )

    with patch("newswatch.hydration.fetch_article_html", fetch), patch(
        "newswatch.hydration.parse_document"
    ), patch("newswatch.hydration.extract_readable", return_value=extracted()):
        stats = await run_hydrator_once(pool, None, targets, storage=storage)

    assert (stats.attempted, stats.hydrated, stats.failed) == (2, 1, 1)
    assert list(storage.article_texts) == [2]


@pytest.mark.asyncio
async def test_run_without_targets_loads_newest_backlog(pool):
    storage = InMemoryStorage()
    for day in range(1, 5):
        storage.add_source(
            f"https://www.example.com/{day}",
            published=datetime(2024, 5, day, tzinfo=timezone.utc),
        )
    storage.article_texts[4] = {"text": "done", "html": None}

    with patch(
        "newswatch.hydration.fetch_article_html", AsyncMock(return_value=ok_outcome())
    ), patch("newswatch.hydration.parse_document"), patch(
        "newswatch.hydration.extract_readable", return_value=extracted()
    ):
        stats = await run_hydrator_once(pool, None, storage=storage, fallback_limit=2)

    assert stats.attempted == 2
    assert set(storage.article_texts) == {2, 3, 4}
