"""RSS/Atom feed adapter."""

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

import feedparser
import httpx
import pendulum

from ..errors import FeedParseError
from ..models.feed import FeedSection, normalize_section
from .base import SourceAdapter, strip_html
from .models import NormalizedArticle

logger = logging.getLogger(__name__)


def _entry_published(entry: Any, fetched_at: datetime) -> datetime:
    """Entry date in UTC; feedparser has already normalized the parsed structs."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return pendulum.datetime(*parsed[:6], tz="UTC")
            except ValueError:
                continue
    for key in ("published", "updated"):
        value = entry.get(key)
        if value:
            try:
                parsed_value = pendulum.parse(value, strict=False)
            except ValueError:
                continue
            if isinstance(parsed_value, datetime):
                return parsed_value
    return fetched_at


def _entry_html(entry: Any) -> Optional[str]:
    content = entry.get("content")
    if content:
        value = content[0].get("value")
        if value:
            return value
    return entry.get("summary") or None


class RssAdapter(SourceAdapter):
    """Fetch and parse one RSS or Atom feed URL."""

    def __init__(
        self,
        adapter_id: str,
        url: str,
        client: httpx.AsyncClient,
        publication_slug: Optional[str] = None,
        section: Optional[str] = None,
        timeout: float = 20.0,
        language: str = "en",
    ) -> None:
        """Initialize RSS adapter."""
        self._id = adapter_id
        self.url = url
        self.client = client
        self.publication_slug = publication_slug
        self.section: FeedSection = normalize_section(section)
        self.timeout = timeout
        self.language = language

    @property
    def id(self) -> str:
        return self._id

    async def fetch_batch(self) -> List[NormalizedArticle]:
        """Fetch the feed and map its entries."""
        response = await self.client.get(self.url, timeout=self.timeout)
        response.raise_for_status()

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise FeedParseError(self.id, f"Invalid feed: {feed.get('bozo_exception')}")

        fetched_at = pendulum.now("UTC")
        articles = []
        for entry in feed.entries:
            link = entry.get("link")
            title = entry.get("title")
            if not link and not title:
                continue
            if not link:
                logger.debug("[%s] skipping entry without link: %s", self.id, title)
                continue

            articles.append(
                NormalizedArticle(
                    external_id=entry.get("id") or link,
                    url=link,
                    title=title or link,
                    summary=strip_html(entry.get("summary")),
                    html=_entry_html(entry),
                    author=entry.get("author") or None,
                    published=_entry_published(entry, fetched_at),
                    publication_slug=self.publication_slug,
                    section=self.section.value,
                    language=self.language,
                    raw=dict(entry),
                )
            )

        logger.info(
            "[%s] parsed %d entries", self.id, len(articles), extra={"adapter_id": self.id}
        )
        return articles


RssUrlFor = Callable[[FeedSection], str]


def make_rss_adapter_factory(
    publication_slug: str,
    id_prefix: str,
    feed_url_for: RssUrlFor,
) -> Callable[..., RssAdapter]:
    """Build a per-section adapter factory for a publication with fixed feed URLs."""

    def factory(section: FeedSection, client: httpx.AsyncClient, timeout: float = 20.0) -> RssAdapter:
        return RssAdapter(
            adapter_id=f"{id_prefix}-{section.value}",
            url=feed_url_for(section),
            client=client,
            publication_slug=publication_slug,
            section=section.value,
            timeout=timeout,
        )

    return factory


BBC_FEEDS = {
    FeedSection.NEWS: "https://feeds.bbci.co.uk/news/rss.xml",
    FeedSection.POLITICS: "https://feeds.bbci.co.uk/news/politics/rss.xml",
    FeedSection.SCIENCE: "https://feeds.bbci.co.uk/news/science_and_environment/rss.xml",
    FeedSection.CULTURE: "https://feeds.bbci.co.uk/news/entertainment_and_arts/rss.xml",
}

NPR_FEEDS = {
    FeedSection.NEWS: "https://feeds.npr.org/1001/rss.xml",
    FeedSection.POLITICS: "https://feeds.npr.org/1014/rss.xml",
    FeedSection.SCIENCE: "https://feeds.npr.org/1007/rss.xml",
    FeedSection.CULTURE: "https://feeds.npr.org/1008/rss.xml",
}

make_bbc_adapter = make_rss_adapter_factory("bbc", "bbc", BBC_FEEDS.__getitem__)
make_npr_adapter = make_rss_adapter_factory("npr", "npr", NPR_FEEDS.__getitem__)
