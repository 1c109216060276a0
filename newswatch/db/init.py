"""Database initialization and schema management."""

import logging

import psycopg
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
-- Subjects table
CREATE TABLE IF NOT EXISTS subjects (
    id SERIAL PRIMARY KEY,
    slug TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('PERSON', 'ORGANIZATION', 'POLICY', 'TOPIC')),
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (name, type)
);

-- Watches table
CREATE TABLE IF NOT EXISTS subject_watches (
    id SERIAL PRIMARY KEY,
    subject_id INTEGER NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    query TEXT NOT NULL,
    enabled BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Publications table
CREATE TABLE IF NOT EXISTS publications (
    id SERIAL PRIMARY KEY,
    slug TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    domain TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Feed catalog
CREATE TABLE IF NOT EXISTS feeds (
    id SERIAL PRIMARY KEY,
    url TEXT NOT NULL UNIQUE,
    title TEXT,
    kind TEXT NOT NULL DEFAULT 'rss' CHECK (kind IN ('rss', 'atom', 'api', 'scraper')),
    adapter_key TEXT,
    section TEXT,
    publication_id INTEGER REFERENCES publications(id),
    quality_score REAL,
    params JSONB,
    lang TEXT DEFAULT 'en',
    region TEXT,
    enabled BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Watch to feed links
CREATE TABLE IF NOT EXISTS subject_feeds (
    id SERIAL PRIMARY KEY,
    watch_id INTEGER NOT NULL REFERENCES subject_watches(id) ON DELETE CASCADE,
    feed_id INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (watch_id, feed_id)
);

-- Sources table (url is always the normalized form)
CREATE TABLE IF NOT EXISTS sources (
    id SERIAL PRIMARY KEY,
    url TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    publication_id INTEGER REFERENCES publications(id),
    published TIMESTAMPTZ NOT NULL,
    excerpt TEXT,
    summary TEXT,
    sentiment REAL CHECK (sentiment IS NULL OR (sentiment >= -1 AND sentiment <= 1)),
    word_count INTEGER,
    text_hash TEXT,
    author TEXT,
    html TEXT,
    section TEXT,
    language TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Full text, written by the hydrator only
CREATE TABLE IF NOT EXISTS article_texts (
    source_id INTEGER PRIMARY KEY REFERENCES sources(id) ON DELETE CASCADE,
    text TEXT NOT NULL,
    html TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Subject to source match evidence
CREATE TABLE IF NOT EXISTS subject_sources (
    subject_id INTEGER NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    source_id INTEGER NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (subject_id, source_id)
);

-- Append-only audit trail
CREATE TABLE IF NOT EXISTS ingestion_events (
    id SERIAL PRIMARY KEY,
    source_url TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('inserted', 'matched')),
    detail JSONB NOT NULL DEFAULT '{}'::jsonb,
    source_id INTEGER REFERENCES sources(id) ON DELETE SET NULL,
    occurred_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_subject_watches_subject_id ON subject_watches(subject_id);
CREATE INDEX IF NOT EXISTS idx_feeds_section ON feeds(section);
CREATE INDEX IF NOT EXISTS idx_subject_feeds_feed_id ON subject_feeds(feed_id);
CREATE INDEX IF NOT EXISTS idx_sources_publication_id ON sources(publication_id);
CREATE INDEX IF NOT EXISTS idx_sources_published ON sources(published);
CREATE INDEX IF NOT EXISTS idx_sources_text_hash ON sources(text_hash);
CREATE INDEX IF NOT EXISTS idx_subject_sources_source_id ON subject_sources(source_id);
CREATE INDEX IF NOT EXISTS idx_ingestion_events_source_id ON ingestion_events(source_id);
CREATE INDEX IF NOT EXISTS idx_ingestion_events_occurred_at ON ingestion_events(occurred_at);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

-- Create update triggers
CREATE OR REPLACE TRIGGER update_subjects_updated_at BEFORE UPDATE ON subjects
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_subject_watches_updated_at BEFORE UPDATE ON subject_watches
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_feeds_updated_at BEFORE UPDATE ON feeds
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_sources_updated_at BEFORE UPDATE ON sources
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_article_texts_updated_at BEFORE UPDATE ON article_texts
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


async def validate_connection(pool: AsyncConnectionPool) -> bool:
    """Validate database connection."""
    try:
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                result = await cur.fetchone()
                return result is not None and result["ok"] == 1
    except psycopg.Error as e:
        logger.error("Database connection failed: %s", e)
        return False


async def init_database(pool: AsyncConnectionPool) -> None:
    """Initialize database schema."""
    try:
        async with pool.connection() as conn:
            async with conn.transaction():
                await conn.execute(SCHEMA_SQL)
        logger.info("Database schema initialized successfully")
    except psycopg.DatabaseError as e:
        logger.error("Failed to initialize database schema: %s", e)
        raise
