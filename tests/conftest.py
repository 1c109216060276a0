"""Shared fakes for connection, pool and storage."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pytest

from newswatch.db.sources import SourceStorage
from newswatch.ingestion.models import HydrationTarget, NormalizedArticle, PublicationHint
from newswatch.models import IngestionEvent


class FakeTransaction:
    def __init__(self, conn: "FakeConnection") -> None:
        self.conn = conn

    async def __aenter__(self) -> "FakeTransaction":
        self.conn.depth += 1
        self.conn.transactions_opened += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.conn.depth -= 1
        return False


class FakeConnection:
    """Stands in for ``psycopg.AsyncConnection``; only tracks transactions."""

    def __init__(self) -> None:
        self.depth = 0
        self.transactions_opened = 0

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)


class FakePool:
    def __init__(self, conn: Optional[FakeConnection] = None) -> None:
        self.conn = conn or FakeConnection()
        self.connections_handed_out = 0

    @asynccontextmanager
    async def connection(self):
        self.connections_handed_out += 1
        yield self.conn


class InMemoryStorage(SourceStorage):
    """SourceStorage double that keeps every table in dicts.

    Conflict handling mirrors the SQL: sources conflict on url, subject
    links on the pair, article texts on source id.
    """

    def __init__(
        self,
        watches: Iterable[Dict[str, Any]] = (),
        subject_ids: Iterable[int] = (),
    ) -> None:
        self.watches = list(watches)
        self.subject_ids: Set[int] = set(subject_ids)
        self.publications: Dict[str, int] = {}
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.article_texts: Dict[int, Dict[str, Any]] = {}
        self.subject_sources: Set[Tuple[int, int]] = set()
        self.events: List[IngestionEvent] = []
        self.fail_batch_insert: Optional[Exception] = None
        self.probed: List[Dict[str, Any]] = []
        self._next_source_id = 1

    # persistence

    async def load_enabled_watches(self, conn):
        return [dict(w) for w in self.watches if w.get("enabled", True)]

    async def ensure_publications(self, conn, hints: Iterable[Optional[PublicationHint]]):
        result = {}
        for hint in hints:
            if hint is None:
                continue
            if hint.slug not in self.publications:
                self.publications[hint.slug] = len(self.publications) + 1
            result[hint.slug] = self.publications[hint.slug]
        return result

    async def existing_urls(self, conn, urls: Sequence[str]) -> Set[str]:
        return {url for url in urls if url in self.sources}

    async def insert_sources_batch(self, conn, rows: Sequence[Dict[str, Any]]) -> None:
        if self.fail_batch_insert is not None:
            raise self.fail_batch_insert
        for row in rows:
            if row["url"] in self.sources:
                continue
            self.sources[row["url"]] = dict(row, id=self._next_source_id)
            self._next_source_id += 1

    async def probe_single_row(self, conn, row: Dict[str, Any]) -> None:
        self.probed.append(row)

    async def ids_for_urls(self, conn, urls: Sequence[str]) -> Dict[str, int]:
        return {url: self.sources[url]["id"] for url in urls if url in self.sources}

    async def existing_source_ids(self, conn, ids: Sequence[int]) -> Set[int]:
        known = {row["id"] for row in self.sources.values()}
        return {i for i in ids if i in known}

    async def existing_subject_ids(self, conn, ids: Sequence[int]) -> Set[int]:
        return {i for i in ids if i in self.subject_ids}

    async def insert_subject_sources(self, conn, pairs: Sequence[Tuple[int, int]]) -> None:
        self.subject_sources.update(pairs)

    async def insert_events(self, conn, events: Sequence[IngestionEvent]) -> None:
        self.events.extend(events)

    async def ids_without_text(self, conn, ids: Sequence[int]) -> Set[int]:
        return {i for i in ids if i not in self.article_texts}

    # hydration

    def source_by_id(self, source_id: int) -> Optional[Dict[str, Any]]:
        for row in self.sources.values():
            if row["id"] == source_id:
                return row
        return None

    async def get_source_meta(self, conn, source_id: int):
        row = self.source_by_id(source_id)
        if row is None:
            return None
        return {
            "id": row["id"],
            "author": row.get("author"),
            "excerpt": row.get("excerpt"),
            "title": row.get("title"),
        }

    async def upsert_article_text(self, conn, source_id: int, text: str, html: Optional[str]):
        existing = self.article_texts.get(source_id, {})
        self.article_texts[source_id] = {
            "text": text,
            "html": html if html is not None else existing.get("html"),
        }

    async def update_source_enrichment(
        self,
        conn,
        source_id,
        word_count,
        text_hash,
        sentiment,
        author=None,
        excerpt=None,
    ):
        row = self.source_by_id(source_id)
        row.update(word_count=word_count, text_hash=text_hash, sentiment=sentiment)
        if row.get("author") is None:
            row["author"] = author
        if row.get("excerpt") is None:
            row["excerpt"] = excerpt

    async def find_same_hash(self, conn, text_hash: str, source_id: int) -> Optional[int]:
        for row in sorted(self.sources.values(), key=lambda r: r["id"]):
            if row["id"] != source_id and row.get("text_hash") == text_hash:
                return row["id"]
        return None

    async def load_hydration_backlog(self, conn, limit: int = 15) -> List[HydrationTarget]:
        rows = [r for r in self.sources.values() if r["id"] not in self.article_texts]
        rows.sort(key=lambda r: (r["published"], r["id"]), reverse=True)
        return [HydrationTarget(source_id=r["id"], url=r["url"]) for r in rows[:limit]]

    # helpers for tests

    def add_source(self, url: str, **fields: Any) -> int:
        row = {
            "url": url,
            "title": fields.pop("title", "Untitled"),
            "published": fields.pop("published", datetime(2024, 5, 1, tzinfo=timezone.utc)),
            "author": None,
            "excerpt": None,
            "id": self._next_source_id,
        }
        row.update(fields)
        self.sources[url] = row
        self._next_source_id += 1
        return row["id"]


def make_article(
    url: str = "https://www.bbc.co.uk/news/world-1",
    title: str = "UN report on climate change impacts",
    **fields: Any,
) -> NormalizedArticle:
    fields.setdefault("published", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
    return NormalizedArticle(url=url, title=title, **fields)


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def pool(conn: FakeConnection) -> FakePool:
    return FakePool(conn)
