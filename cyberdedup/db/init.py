"""Database initialization and schema management."""

from typing import Any, Dict

from psycopg.errors import DatabaseError
from rich.console import Console

from ..errors import IndexUnavailableError
from .connection import get_connection

console = Console()


SCHEMA_SQL = """
-- Articles table (denormalized update history in `updates`)
CREATE TABLE IF NOT EXISTS articles (
    id TEXT PRIMARY KEY,
    publication_date DATE NOT NULL,
    headline TEXT NOT NULL DEFAULT '',
    slug TEXT,
    summary TEXT NOT NULL DEFAULT '',
    full_text TEXT,
    sources JSONB NOT NULL DEFAULT '[]'::jsonb,
    updates JSONB NOT NULL DEFAULT '[]'::jsonb,
    revision_count INTEGER NOT NULL DEFAULT 0 CHECK (revision_count >= 0),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- CVE inverted index
CREATE TABLE IF NOT EXISTS article_cves (
    article_id TEXT NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    cve_id TEXT NOT NULL,
    cvss_score REAL CHECK (cvss_score >= 0 AND cvss_score <= 10),
    severity TEXT,
    is_known_exploited BOOLEAN NOT NULL DEFAULT FALSE,
    PRIMARY KEY (article_id, cve_id)
);

-- Entity inverted index
CREATE TABLE IF NOT EXISTS article_entities (
    article_id TEXT NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    entity_name TEXT NOT NULL,
    entity_type TEXT NOT NULL CHECK (
        entity_type IN ('threat_actor', 'malware', 'product', 'company', 'government_agency')
    ),
    PRIMARY KEY (article_id, entity_type, entity_name)
);

-- Structured update history
CREATE TABLE IF NOT EXISTS article_updates (
    id SERIAL PRIMARY KEY,
    article_id TEXT NOT NULL REFERENCES articles(id),
    revision INTEGER NOT NULL,
    update_timestamp TIMESTAMPTZ NOT NULL,
    summary TEXT NOT NULL,
    detail TEXT NOT NULL,
    sources JSONB NOT NULL DEFAULT '[]'::jsonb,
    severity_change TEXT NOT NULL CHECK (severity_change IN ('increased', 'decreased', 'unchanged')),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (article_id, revision)
);

-- Runs table
CREATE TABLE IF NOT EXISTS runs (
    id SERIAL PRIMARY KEY,
    run_date DATE NOT NULL,
    started_at TIMESTAMP NOT NULL,
    finished_at TIMESTAMP,
    status TEXT NOT NULL DEFAULT 'running' CHECK (status IN ('running', 'success', 'failed')),
    stats_json JSONB,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Append-only resolution audit log
CREATE TABLE IF NOT EXISTS article_resolutions (
    id SERIAL PRIMARY KEY,
    run_id INTEGER REFERENCES runs(id),
    article_id TEXT NOT NULL,
    publication_date DATE NOT NULL,
    resolution TEXT NOT NULL CHECK (resolution IN ('NEW', 'SKIP', 'UPDATE', 'HELD', 'ERROR')),
    classification TEXT CHECK (classification IN ('NEW', 'BORDERLINE', 'UPDATE')),
    similarity_score REAL,
    breakdown JSONB,
    matched_article_id TEXT,
    reasoning TEXT,
    resolution_method TEXT NOT NULL DEFAULT 'automatic' CHECK (resolution_method IN ('automatic', 'llm')),
    target_json JSONB,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_articles_publication_date ON articles(publication_date);
CREATE INDEX IF NOT EXISTS idx_article_cves_cve_id ON article_cves(cve_id);
CREATE INDEX IF NOT EXISTS idx_article_entities_lookup ON article_entities(entity_type, entity_name);
CREATE INDEX IF NOT EXISTS idx_article_updates_article_id ON article_updates(article_id);
CREATE INDEX IF NOT EXISTS idx_article_resolutions_article_id ON article_resolutions(article_id);
CREATE INDEX IF NOT EXISTS idx_article_resolutions_run_id ON article_resolutions(run_id);
CREATE INDEX IF NOT EXISTS idx_runs_run_date ON runs(run_date);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

-- Create update triggers
DROP TRIGGER IF EXISTS update_articles_updated_at ON articles;
CREATE TRIGGER update_articles_updated_at BEFORE UPDATE ON articles
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_runs_updated_at ON runs;
CREATE TRIGGER update_runs_updated_at BEFORE UPDATE ON runs
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
    except (IndexUnavailableError, DatabaseError) as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        return False


def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        with get_connection(config) as conn:
            with conn.transaction(), conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
                console.print("Database schema initialized successfully")
    except DatabaseError as e:
        console.print(f"[red]Failed to initialize database schema: {e}[/red]")
        raise
