"""Data models for newswatch."""

from .feed import Feed, FeedKind, FeedSection, Publication, normalize_section
from .source import ArticleText, EventStatus, IngestionEvent, Source
from .subject import Subject, SubjectFeed, SubjectSource, SubjectType, Watch

__all__ = [
    "ArticleText",
    "EventStatus",
    "Feed",
    "FeedKind",
    "FeedSection",
    "IngestionEvent",
    "Publication",
    "Source",
    "Subject",
    "SubjectFeed",
    "SubjectSource",
    "SubjectType",
    "Watch",
    "normalize_section",
]
