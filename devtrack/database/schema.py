"""Database schema definition."""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
-- Tracked repositories
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    path TEXT NOT NULL UNIQUE,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- One categorized summary per project per day
CREATE TABLE IF NOT EXISTS daily_logs (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id),
    date TEXT NOT NULL,                       -- YYYY-MM-DD
    summary TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'other',
    files_changed TEXT NOT NULL DEFAULT '[]', -- JSON list of {path, additions, deletions}
    ai_classification TEXT,
    user_override TEXT,
    created_at TEXT NOT NULL,
    UNIQUE(project_id, date)
);

CREATE TABLE IF NOT EXISTS milestones (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id),
    title TEXT NOT NULL,
    description TEXT,
    version TEXT,
    git_tag TEXT,
    status TEXT NOT NULL DEFAULT 'planned',
    source TEXT NOT NULL DEFAULT 'manual',    -- 'manual', 'tag', 'ai'
    target_date TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL
);

-- Tags observed in each repository
CREATE TABLE IF NOT EXISTS git_tags (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id),
    name TEXT NOT NULL,
    commit_hash TEXT NOT NULL,
    date TEXT NOT NULL,
    message TEXT,
    first_seen_at TEXT NOT NULL,
    UNIQUE(project_id, name)
);

CREATE TABLE IF NOT EXISTS inbox_items (
    id TEXT PRIMARY KEY,
    item_type TEXT NOT NULL,
    project_id TEXT REFERENCES projects(id),
    question TEXT NOT NULL,
    context TEXT,
    suggested_actions TEXT NOT NULL DEFAULT '[]',
    status TEXT NOT NULL DEFAULT 'pending',
    answer TEXT,
    created_at TEXT NOT NULL,
    answered_at TEXT
);

-- Opaque key-value settings (user settings are one JSON blob)
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status);
CREATE INDEX IF NOT EXISTS idx_daily_logs_project_date ON daily_logs(project_id, date);
CREATE INDEX IF NOT EXISTS idx_milestones_project ON milestones(project_id);
CREATE INDEX IF NOT EXISTS idx_milestones_status ON milestones(status);
CREATE INDEX IF NOT EXISTS idx_milestones_git_tag
    ON milestones(project_id, git_tag) WHERE git_tag IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_git_tags_project ON git_tags(project_id);
CREATE INDEX IF NOT EXISTS idx_inbox_status ON inbox_items(status);
"""

# (table, column, column definition) added after the first release
MIGRATION_COLUMNS = [
    ("milestones", "source", "TEXT NOT NULL DEFAULT 'manual'"),
    ("daily_logs", "ai_classification", "TEXT"),
    ("daily_logs", "user_override", "TEXT"),
    ("git_tags", "message", "TEXT"),
]


def create_schema(conn: sqlite3.Connection) -> None:
    """Create schema and run migrations."""
    # CREATE IF NOT EXISTS leaves older tables untouched; migrations fill the gaps
    conn.executescript(SCHEMA_SQL)
    run_migrations(conn)
    conn.commit()


def run_migrations(conn: sqlite3.Connection) -> None:
    for table, column, definition in MIGRATION_COLUMNS:
        migrate_add_column(conn, table, column, definition)


def migrate_add_column(conn: sqlite3.Connection, table: str, column: str, definition: str) -> bool:
    """Add a column to an existing table if it is missing. Returns True if added."""
    cursor = conn.execute(f"PRAGMA table_info({table})")
    existing_columns = {row[1] for row in cursor.fetchall()}

    if column in existing_columns:
        return False

    logger.info("Running migration: adding %s.%s", table, column)
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
    except sqlite3.OperationalError as e:
        if "duplicate column" in str(e).lower():
            return False
        raise
    return True
