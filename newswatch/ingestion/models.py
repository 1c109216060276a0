"""Data models for ingestion."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class NormalizedArticle(BaseModel):
    """Uniform adapter output, before matching and persistence."""

    external_id: Optional[str] = Field(None, description="Feed guid or API id")
    url: str = Field(..., description="Article URL as published")
    title: str = Field(..., description="Article title")
    summary: Optional[str] = Field(None, description="Plain-text summary/snippet")
    excerpt: Optional[str] = Field(None, description="Short excerpt if the source gives one")
    html: Optional[str] = Field(None, description="HTML content supplied by the feed")
    author: Optional[str] = Field(None, description="Byline")
    published: datetime = Field(..., description="Publication date (fetch time if absent)")
    publication_slug: Optional[str] = Field(None, description="Adapter-supplied publication slug")
    section: Optional[str] = Field(None, description="Topical section")
    language: Optional[str] = Field("en", description="Language code")
    raw: Dict[str, Any] = Field(default_factory=dict, description="Original payload", repr=False)


class Candidate(BaseModel):
    """A normalized article paired with the subjects whose watch it matched."""

    article: NormalizedArticle
    subject_ids: List[int] = Field(default_factory=list)


class PublicationHint(BaseModel):
    """What we know about an article's publication before resolving it."""

    slug: str = Field(..., description="Publication slug")
    name: Optional[str] = Field(None, description="Display name")
    domain: Optional[str] = Field(None, description="Registrable domain")


class HydrationTarget(BaseModel):
    """A source still lacking full text."""

    source_id: int
    url: str


class PersistResult(BaseModel):
    """Counts from one persistence pass over an adapter batch."""

    fetched: int = 0
    kept: int = 0
    inserted: int = 0
    linked: int = 0
    hydrate_targets: List[HydrationTarget] = Field(default_factory=list)
