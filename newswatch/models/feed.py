"""Feed catalog and publication models."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from .base import DBModel


class FeedKind(str, Enum):
    """How a feed is pulled."""

    RSS = "rss"
    ATOM = "atom"
    API = "api"
    SCRAPER = "scraper"


class FeedSection(str, Enum):
    """Coarse topical bucket used for feed selection."""

    NEWS = "news"
    POLITICS = "politics"
    SCIENCE = "science"
    CULTURE = "culture"


def normalize_section(value: Optional[str]) -> FeedSection:
    """Map legacy and unknown section names onto the four known buckets."""
    section = (value or "").strip().lower()
    if section in ("politics", "science", "culture"):
        return FeedSection(section)
    # "top", "", "news" and anything unknown all mean general news
    return FeedSection.NEWS


class Publication(DBModel):
    """A news outlet."""

    slug: str = Field(..., description="Unique slug, e.g. 'bbc'")
    name: str = Field(..., description="Display name")
    domain: str = Field(..., description="Unique registrable domain")


class Feed(DBModel):
    """A pollable catalog entry."""

    url: str = Field(..., description="Feed or API endpoint URL")
    title: Optional[str] = Field(None, description="Human-readable feed title")
    kind: FeedKind = Field(FeedKind.RSS, description="Pull mechanism")
    adapter_key: Optional[str] = Field(None, description="Adapter registry key, e.g. 'guardian-api'")
    section: Optional[str] = Field(None, description="Topical section")
    publication_id: Optional[int] = Field(None, description="Foreign key to publications table")
    publication_slug: Optional[str] = Field(None, description="Joined publication slug")
    quality_score: Optional[float] = Field(None, description="Higher is better")
    params: Dict[str, Any] = Field(default_factory=dict, description="Adapter parameters")
    lang: Optional[str] = Field("en", description="Feed language")
    region: Optional[str] = Field(None, description="Feed region")
    enabled: bool = Field(True, description="Whether the runner polls this feed")

    @field_validator("params", mode="before")
    @classmethod
    def default_params(cls, v: Any) -> Any:
        """Treat a NULL params column as an empty mapping."""
        return v or {}
