"""Persisted article models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .base import DBModel


class Source(DBModel):
    """Canonical persisted record of one discovered article."""

    url: str = Field(..., description="Normalized article URL (unique)")
    title: str = Field(..., description="Article title")
    publication_id: Optional[int] = Field(None, description="Foreign key to publications table")
    published: datetime = Field(..., description="Publication timestamp")
    excerpt: Optional[str] = Field(None, description="Short excerpt")
    summary: Optional[str] = Field(None, description="Feed-supplied summary")
    sentiment: Optional[float] = Field(None, ge=-1.0, le=1.0, description="Sentiment score")
    word_count: Optional[int] = Field(None, description="Words in extracted text")
    text_hash: Optional[str] = Field(None, description="SHA-256 of extracted text")
    author: Optional[str] = Field(None, description="Byline")
    html: Optional[str] = Field(None, description="Feed-supplied HTML")
    section: Optional[str] = Field(None, description="Topical section")
    language: Optional[str] = Field(None, description="Language code")


class ArticleText(BaseModel):
    """Full extracted text of a source, written by the hydrator only."""

    source_id: int = Field(..., description="Foreign key to sources table")
    text: str = Field(..., description="Extracted main text")
    html: Optional[str] = Field(None, description="Extracted content HTML")


class EventStatus(str, Enum):
    """Outcome of one persistence attempt for one URL."""

    INSERTED = "inserted"
    MATCHED = "matched"


class IngestionEvent(DBModel):
    """Append-only audit row."""

    source_url: str = Field(..., description="Normalized article URL")
    status: EventStatus = Field(..., description="inserted or matched")
    detail: Dict[str, Any] = Field(default_factory=dict, description="Structured audit payload")
    source_id: Optional[int] = Field(None, description="Foreign key to sources table")
