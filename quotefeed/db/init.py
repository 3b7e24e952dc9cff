"""Database initialization and schema management."""

import logging
from typing import Any, Dict

from psycopg.errors import DatabaseError

from .connection import get_connection

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
-- Live feed sources
CREATE TABLE IF NOT EXISTS sources (
    id SERIAL PRIMARY KEY,
    domain TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    rss_url TEXT,
    enabled BOOLEAN NOT NULL DEFAULT TRUE,
    consecutive_failures INTEGER NOT NULL DEFAULT 0 CHECK (consecutive_failures >= 0),
    is_top_story BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Historical providers, one row per registered provider
CREATE TABLE IF NOT EXISTS historical_sources (
    id SERIAL PRIMARY KEY,
    provider_key TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    enabled BOOLEAN NOT NULL DEFAULT FALSE,
    status TEXT NOT NULL DEFAULT 'unknown'
        CHECK (status IN ('working', 'failed', 'disabled', 'unknown')),
    consecutive_failures INTEGER NOT NULL DEFAULT 0 CHECK (consecutive_failures >= 0),
    total_articles_fetched INTEGER NOT NULL DEFAULT 0,
    last_fetch_at TIMESTAMPTZ,
    last_success_at TIMESTAMPTZ,
    last_error TEXT,
    config JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Discovered documents
CREATE TABLE IF NOT EXISTS articles (
    id SERIAL PRIMARY KEY,
    url TEXT NOT NULL UNIQUE,
    source_id INTEGER REFERENCES sources(id) ON DELETE SET NULL,
    historical_source_id INTEGER REFERENCES historical_sources(id) ON DELETE SET NULL,
    title TEXT,
    published_at TIMESTAMPTZ,
    prefetched_text TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'processing', 'completed', 'failed', 'no_quotes')),
    error TEXT,
    quote_count INTEGER NOT NULL DEFAULT 0,
    processed_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (source_id IS NULL OR historical_source_id IS NULL)
);

-- Extracted quotes
CREATE TABLE IF NOT EXISTS quotes (
    id SERIAL PRIMARY KEY,
    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    speaker TEXT NOT NULL,
    text TEXT NOT NULL,
    context TEXT,
    quote_date DATE,
    significance INTEGER NOT NULL DEFAULT 5 CHECK (significance BETWEEN 1 AND 10),
    is_visible BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Vocabulary
CREATE TABLE IF NOT EXISTS keywords (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    name_normalized TEXT NOT NULL UNIQUE,
    keyword_type TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS keyword_aliases (
    id SERIAL PRIMARY KEY,
    keyword_id INTEGER NOT NULL REFERENCES keywords(id) ON DELETE CASCADE,
    alias TEXT NOT NULL,
    alias_normalized TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (keyword_id, alias_normalized)
);

CREATE TABLE IF NOT EXISTS topics (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL UNIQUE,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'archived', 'draft')),
    start_date DATE,
    end_date DATE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS topic_aliases (
    id SERIAL PRIMARY KEY,
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    alias TEXT NOT NULL,
    alias_normalized TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (topic_id, alias_normalized)
);

CREATE TABLE IF NOT EXISTS topic_keywords (
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    keyword_id INTEGER NOT NULL REFERENCES keywords(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (topic_id, keyword_id)
);

-- Classification links
CREATE TABLE IF NOT EXISTS quote_keywords (
    quote_id INTEGER NOT NULL REFERENCES quotes(id) ON DELETE CASCADE,
    keyword_id INTEGER NOT NULL REFERENCES keywords(id) ON DELETE CASCADE,
    confidence TEXT NOT NULL CHECK (confidence IN ('high', 'medium', 'low')),
    matched_text TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (quote_id, keyword_id)
);

-- Derived cache, rebuildable from quote_keywords and topic_keywords
CREATE TABLE IF NOT EXISTS quote_topics (
    quote_id INTEGER NOT NULL REFERENCES quotes(id) ON DELETE CASCADE,
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (quote_id, topic_id)
);

-- Review queue
CREATE TABLE IF NOT EXISTS taxonomy_suggestions (
    id SERIAL PRIMARY KEY,
    suggestion_type TEXT NOT NULL
        CHECK (suggestion_type IN ('new_keyword', 'new_topic', 'keyword_alias', 'topic_keyword', 'topic_alias')),
    suggested_data JSONB NOT NULL DEFAULT '{}'::jsonb,
    name_normalized TEXT,
    source TEXT NOT NULL CHECK (source IN ('per_extraction', 'batch_evolution', 'confidence_review')),
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected', 'edited')),
    quote_id INTEGER REFERENCES quotes(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    reviewed_at TIMESTAMPTZ
);

-- Gap backfill attempts, one per day
CREATE TABLE IF NOT EXISTS backfill_log (
    id SERIAL PRIMARY KEY,
    target_date DATE NOT NULL UNIQUE,
    status TEXT NOT NULL DEFAULT 'processing' CHECK (status IN ('processing', 'completed', 'failed')),
    articles_found INTEGER NOT NULL DEFAULT 0,
    quotes_extracted INTEGER NOT NULL DEFAULT 0,
    error TEXT,
    started_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    completed_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Orchestrator cycles
CREATE TABLE IF NOT EXISTS runs (
    id SERIAL PRIMARY KEY,
    started_at TIMESTAMPTZ NOT NULL,
    finished_at TIMESTAMPTZ,
    status TEXT NOT NULL DEFAULT 'running' CHECK (status IN ('running', 'success', 'partial', 'failed')),
    trigger TEXT NOT NULL DEFAULT 'timer',
    stats_json JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Persisted pipeline knobs
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(status);
CREATE INDEX IF NOT EXISTS idx_articles_source_id ON articles(source_id);
CREATE INDEX IF NOT EXISTS idx_articles_historical_source_id ON articles(historical_source_id);
CREATE INDEX IF NOT EXISTS idx_quotes_article_id ON quotes(article_id);
CREATE INDEX IF NOT EXISTS idx_quotes_quote_date ON quotes(quote_date);
CREATE INDEX IF NOT EXISTS idx_keyword_aliases_normalized ON keyword_aliases(alias_normalized);
CREATE INDEX IF NOT EXISTS idx_topic_aliases_normalized ON topic_aliases(alias_normalized);
CREATE INDEX IF NOT EXISTS idx_quote_keywords_keyword_id ON quote_keywords(keyword_id);
CREATE INDEX IF NOT EXISTS idx_quote_topics_topic_id ON quote_topics(topic_id);
CREATE INDEX IF NOT EXISTS idx_suggestions_pending
    ON taxonomy_suggestions(suggestion_type, name_normalized) WHERE status = 'pending';
CREATE INDEX IF NOT EXISTS idx_runs_started_at ON runs(started_at);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

-- Create update triggers
CREATE OR REPLACE TRIGGER update_sources_updated_at BEFORE UPDATE ON sources
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_historical_sources_updated_at BEFORE UPDATE ON historical_sources
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_topics_updated_at BEFORE UPDATE ON topics
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
        logger.info("Database schema initialized successfully")
    except DatabaseError as e:
        logger.error("Failed to initialize database schema: %s", e)
        raise
