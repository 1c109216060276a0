"""Tests for subject and watch lifecycle."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from newswatch.errors import WatchError
from newswatch.models import Subject, SubjectType, Watch
from newswatch.watches import add_watch, create_subject, default_query, slugify, update_watch

OPENAI = Subject(id=3, name="OpenAI", type=SubjectType.ORGANIZATION, slug="openai-organization")


def subject_storage(subject=OPENAI, created=True):
    storage = MagicMock()
    storage.upsert_subject = AsyncMock(return_value=(subject, created))
    storage.insert_watch = AsyncMock(
        side_effect=lambda conn, subject_id, query: Watch(id=10, subject_id=subject_id, query=query)
    )
    storage.get_subject_by_id = AsyncMock(return_value=subject)
    storage.get_subject_by_name = AsyncMock(return_value=subject)
    storage.update_watch_query = AsyncMock(
        side_effect=lambda conn, watch_id, query: Watch(id=watch_id, subject_id=3, query=query)
    )
    return storage


@pytest.fixture
def store():
    with patch(
        "newswatch.watches.resolve_feeds_for_watch", AsyncMock(return_value=[5, 6])
    ) as resolve, patch(
        "newswatch.watches.feed_store.link_watch_feeds", AsyncMock()
    ) as link, patch(
        "newswatch.watches.feed_store.replace_watch_feeds", AsyncMock()
    ) as replace, patch(
        "newswatch.watches.feed_store.ensure_feeds_exist",
        AsyncMock(side_effect=lambda conn, urls: {url: 100 + i for i, url in enumerate(urls)}),
    ) as ensure:
        yield MagicMock(resolve=resolve, link=link, replace=replace, ensure=ensure)


def test_slugify():
    assert slugify("Donald J. Trump-PERSON") == "donald-j-trump-person"
    assert slugify("  Net Zero!  ") == "net-zero"


def test_default_query_quotes_name():
    assert default_query("OpenAI") == '"OpenAI"'


@pytest.mark.asyncio
async def test_create_subject_adds_default_watch_and_feeds(conn, store):
    storage = subject_storage()

    result = await create_subject(conn, "  OpenAI ", "ORGANIZATION", storage=storage)

    assert result.created
    storage.upsert_subject.assert_awaited_once_with(
        conn, "OpenAI", SubjectType.ORGANIZATION, "openai-organization"
    )
    assert result.watch.watch.query == '"OpenAI"'
    assert result.watch.feed_ids == [5, 6]
    store.link.assert_awaited_once_with(conn, 10, [5, 6])
    assert conn.transactions_opened == 1


@pytest.mark.asyncio
async def test_create_existing_subject_adds_nothing(conn, store):
    storage = subject_storage(created=False)

    result = await create_subject(conn, "OpenAI", "ORGANIZATION", storage=storage)

    assert not result.created
    assert result.watch is None
    storage.insert_watch.assert_not_called()
    store.link.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("name, subject_type", [("X", "TOPIC"), ("Climate", "PLANET")])
async def test_create_subject_rejects_bad_input(conn, store, name, subject_type):
    with pytest.raises(WatchError):
        await create_subject(conn, name, subject_type, storage=subject_storage())


@pytest.mark.asyncio
async def test_add_watch_by_name_with_extra_feeds(conn, store):
    storage = subject_storage()

    result = await add_watch(
        conn,
        " gpt release ",
        subject_name="openai",
        feed_urls=["https://example.com/rss", "https://example.org/rss"],
        storage=storage,
    )

    storage.get_subject_by_name.assert_awaited_once_with(conn, "openai")
    assert result.watch.query == "gpt release"
    assert result.feed_ids == [5, 6, 100, 101]


@pytest.mark.asyncio
async def test_add_watch_unknown_subject(conn, store):
    storage = subject_storage(subject=None)
    storage.get_subject_by_id = AsyncMock(return_value=None)

    with pytest.raises(WatchError, match="Unknown subject"):
        await add_watch(conn, "query", subject_id=99, storage=storage)


@pytest.mark.asyncio
async def test_add_watch_requires_query_and_subject(conn, store):
    with pytest.raises(WatchError):
        await add_watch(conn, "   ", subject_id=1, storage=subject_storage())
    with pytest.raises(WatchError):
        await add_watch(conn, "query", storage=subject_storage())


@pytest.mark.asyncio
async def test_update_watch_replaces_feed_links(conn, store):
    storage = subject_storage()

    result = await update_watch(conn, 10, "chatgpt", storage=storage)

    assert result.watch.query == "chatgpt"
    store.resolve.assert_awaited_once_with(conn, "OpenAI", "chatgpt")
    store.replace.assert_awaited_once_with(conn, 10, [5, 6])
    store.link.assert_not_called()


@pytest.mark.asyncio
async def test_update_unknown_watch(conn, store):
    storage = subject_storage()
    storage.update_watch_query = AsyncMock(return_value=None)

    with pytest.raises(WatchError, match="Unknown watch"):
        await update_watch(conn, 404, "query", storage=storage)
