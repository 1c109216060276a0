"""Build adapters from feed catalog rows or from the built-in static set."""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..config.models import GuardianApiParams
from ..errors import AdapterError, ConfigError
from ..models.feed import Feed, FeedSection
from .base import AdapterContext, SourceAdapter
from .guardian_api import GuardianApiAdapter
from .rss_adapter import RssAdapter, make_bbc_adapter, make_npr_adapter

logger = logging.getLogger(__name__)

GUARDIAN_API_KEY = "guardian-api"

AdapterBuilder = Callable[[Feed, AdapterContext], SourceAdapter]


def _build_rss(feed: Feed, context: AdapterContext) -> SourceAdapter:
    return RssAdapter(
        adapter_id=f"rss-{feed.id}",
        url=feed.url,
        client=context.client,
        publication_slug=feed.publication_slug,
        section=feed.section,
        timeout=context.http.feed_timeout,
        language=feed.lang or "en",
    )


def _build_guardian(feed: Feed, context: AdapterContext) -> SourceAdapter:
    try:
        params = GuardianApiParams.model_validate(feed.params or {})
    except ValidationError as e:
        raise AdapterError(f"feed-{feed.id}", f"Invalid guardian-api params: {e}") from e
    return GuardianApiAdapter.from_params(
        section=feed.section or FeedSection.NEWS.value,
        client=context.client,
        defaults=context.guardian,
        params=params,
        timeout=context.http.feed_timeout,
    )


# Keyed by feeds.adapter_key, falling back to feeds.kind
ADAPTER_BUILDERS: Dict[str, AdapterBuilder] = {
    "rss": _build_rss,
    "atom": _build_rss,
    GUARDIAN_API_KEY: _build_guardian,
}


def adapter_key_for(feed: Feed) -> str:
    """Registry key for a feed row."""
    if feed.adapter_key and feed.adapter_key in ADAPTER_BUILDERS:
        return feed.adapter_key
    return feed.kind.value


def adapter_from_feed(feed: Feed, context: AdapterContext) -> SourceAdapter:
    """Pick the concrete adapter for one feed row."""
    key = adapter_key_for(feed)
    builder = ADAPTER_BUILDERS.get(key)
    if builder is None:
        raise AdapterError(f"feed-{feed.id}", f"No adapter registered for '{key}'")
    return builder(feed, context)


def build_adapters_for_feeds(
    feeds: Iterable[Feed],
    context: AdapterContext,
) -> List[SourceAdapter]:
    """Many feed rows to many adapters, deduplicated by feed id.

    Rows that cannot be turned into an adapter are logged and skipped.
    """
    seen = set()
    adapters: List[SourceAdapter] = []
    for feed in feeds:
        if feed.id in seen:
            continue
        seen.add(feed.id)
        try:
            adapters.append(adapter_from_feed(feed, context))
        except (AdapterError, ConfigError) as e:
            logger.warning("Skipping feed %s (%s): %s", feed.id, feed.url, e)
    return adapters


STATIC_ADAPTER_CONFIGS = [
    ("bbc", FeedSection.NEWS),
    ("bbc", FeedSection.POLITICS),
    ("bbc", FeedSection.SCIENCE),
    ("bbc", FeedSection.CULTURE),
    ("npr", FeedSection.SCIENCE),
    ("npr", FeedSection.CULTURE),
    ("guardian", FeedSection.NEWS),
    ("guardian", FeedSection.POLITICS),
    ("guardian", FeedSection.SCIENCE),
    ("guardian", FeedSection.CULTURE),
]


def static_adapters(context: AdapterContext) -> List[SourceAdapter]:
    """Built-in adapter set used when the feed catalog has no enabled rows."""
    timeout = context.http.feed_timeout
    adapters: List[SourceAdapter] = []
    guardian_key: Optional[str] = context.guardian.resolved_api_key

    for kind, section in STATIC_ADAPTER_CONFIGS:
        if kind == "bbc":
            adapters.append(make_bbc_adapter(section, context.client, timeout))
        elif kind == "npr":
            adapters.append(make_npr_adapter(section, context.client, timeout))
        elif guardian_key:
            adapters.append(
                GuardianApiAdapter.from_params(
                    section=section.value,
                    client=context.client,
                    defaults=context.guardian,
                    timeout=timeout,
                )
            )

    if not guardian_key:
        logger.warning("No Guardian API key configured; static Guardian adapters skipped")
    return adapters
