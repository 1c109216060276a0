"""Database layer for newswatch."""

from .connection import create_pool, open_pool
from .init import init_database, validate_connection
from .publications import derive_publication_from_url, ensure_publications
from .sources import SourceStorage
from .subjects import SubjectStorage

__all__ = [
    "SourceStorage",
    "SubjectStorage",
    "create_pool",
    "derive_publication_from_url",
    "ensure_publications",
    "init_database",
    "open_pool",
    "validate_connection",
]
