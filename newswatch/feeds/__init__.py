"""Feed catalog seeding and per-watch feed selection."""

from .catalog import seed_feed_catalog
from .resolver import DEFAULT_FEED_URL, derive_sections, resolve_feeds_for_watch

__all__ = [
    "DEFAULT_FEED_URL",
    "derive_sections",
    "resolve_feeds_for_watch",
    "seed_feed_catalog",
]
