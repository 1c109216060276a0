"""Subject and watch models."""

from enum import Enum

from pydantic import Field

from .base import DBModel


class SubjectType(str, Enum):
    """Kinds of subject a user can follow."""

    PERSON = "PERSON"
    ORGANIZATION = "ORGANIZATION"
    POLICY = "POLICY"
    TOPIC = "TOPIC"


class Subject(DBModel):
    """A followed person, organization, policy or topic."""

    name: str = Field(..., description="Display name")
    type: SubjectType = Field(..., description="Subject type")
    slug: str = Field(..., description="Unique URL slug")


class Watch(DBModel):
    """A subject's standing search query."""

    subject_id: int = Field(..., description="Foreign key to subjects table")
    query: str = Field(..., description="Whitespace-separated match tokens")
    enabled: bool = Field(True, description="Only enabled watches participate in matching")


class SubjectFeed(DBModel):
    """Link between a watch and a catalog feed."""

    watch_id: int = Field(..., description="Foreign key to subject_watches table")
    feed_id: int = Field(..., description="Foreign key to feeds table")


class SubjectSource(DBModel):
    """Evidence that a source matched a subject's watch."""

    subject_id: int = Field(..., description="Foreign key to subjects table")
    source_id: int = Field(..., description="Foreign key to sources table")
