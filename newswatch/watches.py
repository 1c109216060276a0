"""Subject and watch lifecycle: the entry points a CRUD layer calls."""

import logging
import re
from typing import List, NamedTuple, Optional, Sequence

from psycopg import AsyncConnection
from pydantic import BaseModel, Field, ValidationError

from .db import feeds as feed_store
from .db.subjects import SubjectStorage
from .errors import WatchError
from .feeds.resolver import resolve_feeds_for_watch
from .models import Subject, SubjectType, Watch

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


class CreateSubjectInput(BaseModel):
    """Validated input for subject creation."""

    name: str = Field(..., min_length=2, max_length=200)
    type: SubjectType

    model_config = {"str_strip_whitespace": True}


class WatchResult(NamedTuple):
    watch: Watch
    feed_ids: List[int]


class SubjectResult(NamedTuple):
    subject: Subject
    created: bool
    watch: Optional[WatchResult]


def slugify(value: str) -> str:
    """Lower-case, with every non-alphanumeric run turned into one hyphen."""
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def default_query(name: str) -> str:
    return f'"{name}"'


async def _feed_ids_for(
    conn: AsyncConnection,
    subject_name: str,
    query: str,
    feed_urls: Optional[Sequence[str]],
) -> List[int]:
    feed_ids = await resolve_feeds_for_watch(conn, subject_name, query)
    if feed_urls:
        by_url = await feed_store.ensure_feeds_exist(conn, feed_urls)
        feed_ids.extend(by_url[url] for url in feed_urls if url in by_url)
    return list(dict.fromkeys(feed_ids))


async def create_subject(
    conn: AsyncConnection,
    name: str,
    subject_type: str,
    storage: Optional[SubjectStorage] = None,
) -> SubjectResult:
    """
    Create a subject, or return the existing one with the same name and type.

    A new subject gets a default watch quoting its name, linked to the feeds
    the resolver picks for it.

    Raises:
        WatchError: name or type is invalid
    """
    try:
        data = CreateSubjectInput(name=name, type=subject_type)
    except ValidationError as e:
        messages = ", ".join(err["msg"] for err in e.errors())
        raise WatchError(f"Invalid subject: {messages}") from e

    storage = storage or SubjectStorage()
    slug = slugify(f"{data.name}-{data.type.value}")

    async with conn.transaction():
        subject, created = await storage.upsert_subject(conn, data.name, data.type, slug)
        if not created:
            logger.info("Subject %s already exists", slug)
            return SubjectResult(subject=subject, created=False, watch=None)

        watch = await storage.insert_watch(conn, subject.id, default_query(data.name))
        feed_ids = await _feed_ids_for(conn, data.name, watch.query, None)
        await feed_store.link_watch_feeds(conn, watch.id, feed_ids)

    logger.info("Created subject %s with watch %s (%d feeds)", slug, watch.id, len(feed_ids))
    return SubjectResult(
        subject=subject,
        created=True,
        watch=WatchResult(watch=watch, feed_ids=feed_ids),
    )


async def add_watch(
    conn: AsyncConnection,
    query: str,
    subject_id: Optional[int] = None,
    subject_name: Optional[str] = None,
    feed_urls: Optional[Sequence[str]] = None,
    storage: Optional[SubjectStorage] = None,
) -> WatchResult:
    """
    Add an enabled watch to a subject (by id or by name) and link feeds to it.

    ``feed_urls`` are attached in addition to the resolved feeds, creating
    catalog rows for unknown urls.

    Raises:
        WatchError: empty query or unknown subject
    """
    query = (query or "").strip()
    if not query:
        raise WatchError("Watch query must not be empty")
    if subject_id is None and not subject_name:
        raise WatchError("A subject id or subject name is required")

    storage = storage or SubjectStorage()

    async with conn.transaction():
        if subject_id is not None:
            subject = await storage.get_subject_by_id(conn, subject_id)
        else:
            subject = await storage.get_subject_by_name(conn, subject_name)
        if subject is None:
            wanted = subject_id if subject_id is not None else subject_name
            raise WatchError(f"Unknown subject: {wanted}")

        watch = await storage.insert_watch(conn, subject.id, query)
        feed_ids = await _feed_ids_for(conn, subject.name, query, feed_urls)
        await feed_store.link_watch_feeds(conn, watch.id, feed_ids)

    logger.info("Added watch %s for subject %s (%d feeds)", watch.id, subject.slug, len(feed_ids))
    return WatchResult(watch=watch, feed_ids=feed_ids)


async def update_watch(
    conn: AsyncConnection,
    watch_id: int,
    query: str,
    feed_urls: Optional[Sequence[str]] = None,
    storage: Optional[SubjectStorage] = None,
) -> WatchResult:
    """
    Change a watch's query and replace its feed links with a fresh resolution.

    Raises:
        WatchError: empty query or unknown watch
    """
    query = (query or "").strip()
    if not query:
        raise WatchError("Watch query must not be empty")

    storage = storage or SubjectStorage()

    async with conn.transaction():
        watch = await storage.update_watch_query(conn, watch_id, query)
        if watch is None:
            raise WatchError(f"Unknown watch: {watch_id}")

        subject = await storage.get_subject_by_id(conn, watch.subject_id)
        subject_name = subject.name if subject else ""

        feed_ids = await _feed_ids_for(conn, subject_name, query, feed_urls)
        await feed_store.replace_watch_feeds(conn, watch.id, feed_ids)

    logger.info("Updated watch %s (%d feeds)", watch.id, len(feed_ids))
    return WatchResult(watch=watch, feed_ids=feed_ids)
