"""Feed/API ingestion and article fetching."""

from .article_fetcher import FetchOutcome, FetchStatus, fetch_article_html
from .base import AdapterContext, SourceAdapter
from .guardian_api import GuardianApiAdapter
from .models import Candidate, HydrationTarget, NormalizedArticle, PersistResult, PublicationHint
from .registry import adapter_from_feed, build_adapters_for_feeds, static_adapters
from .rss_adapter import RssAdapter
from .urls import amp_variant, normalize_url

__all__ = [
    "AdapterContext",
    "Candidate",
    "FetchOutcome",
    "FetchStatus",
    "GuardianApiAdapter",
    "HydrationTarget",
    "NormalizedArticle",
    "PersistResult",
    "PublicationHint",
    "RssAdapter",
    "SourceAdapter",
    "adapter_from_feed",
    "amp_variant",
    "build_adapters_for_feeds",
    "fetch_article_html",
    "normalize_url",
    "static_adapters",
]
