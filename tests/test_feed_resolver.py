"""Tests for the watch feed resolver."""

from unittest.mock import AsyncMock, patch

import pytest

from newswatch.feeds.resolver import (
    DEFAULT_FEED_URL,
    derive_sections,
    resolve_feeds_for_watch,
    watch_haystack,
)


def test_derive_sections_always_includes_news():
    assert derive_sections("Weather") == ["news"]
    assert derive_sections("Senate election") == ["politics", "news"]
    assert derive_sections("NASA film festival") == ["science", "culture", "news"]


def test_haystack_is_truncated():
    assert len(watch_haystack("x" * 100, "y" * 100)) == 128


def patched_store(sections=(), titles=(), fallback=None):
    return (
        patch(
            "newswatch.feeds.resolver.feed_store.feeds_by_sections",
            AsyncMock(return_value=list(sections)),
        ),
        patch(
            "newswatch.feeds.resolver.feed_store.feeds_by_title",
            AsyncMock(return_value=list(titles)),
        ),
        patch(
            "newswatch.feeds.resolver.feed_store.feed_id_by_url",
            AsyncMock(return_value=fallback),
        ),
    )


@pytest.mark.asyncio
async def test_merge_keeps_best_score_per_feed():
    by_section, by_title, by_url = patched_store(
        sections=[{"id": 1, "score": 0.5}, {"id": 2, "score": 0.8}, {"id": 3, "score": None}],
        titles=[{"id": 1, "score": 0.9}, {"id": 2, "score": 0.1}],
    )
    with by_section, by_title, by_url as fallback:
        feed_ids = await resolve_feeds_for_watch(None, "Climate", "climate change")

    assert feed_ids == [1, 2, 3]
    fallback.assert_not_called()


@pytest.mark.asyncio
async def test_limit_caps_result():
    rows = [{"id": n, "score": n / 10} for n in range(1, 8)]
    by_section, by_title, by_url = patched_store(sections=rows)
    with by_section, by_title, by_url:
        feed_ids = await resolve_feeds_for_watch(None, "Climate", "climate", limit=3)

    assert feed_ids == [7, 6, 5]


@pytest.mark.asyncio
async def test_no_matches_falls_back_to_default_feed():
    by_section, by_title, by_url = patched_store(fallback=41)
    with by_section as sections, by_title, by_url as fallback:
        feed_ids = await resolve_feeds_for_watch(None, "OpenAI", '"openai"')

    assert feed_ids == [41]
    fallback.assert_awaited_once_with(None, DEFAULT_FEED_URL)
    assert sections.call_args.args[1] == ["science", "news"]


@pytest.mark.asyncio
async def test_no_matches_and_no_default_feed():
    by_section, by_title, by_url = patched_store(fallback=None)
    with by_section, by_title, by_url:
        assert await resolve_feeds_for_watch(None, "Nobody", "nothing") == []
