"""SQLite schema for the local issue store.

Tables:
- projects: configured (owner, repo) pairs, unique together
- issues: cached remote issues keyed by remote id, each referencing its project

The legacy single-project layout had no projects table and no project
reference on issues. It is kept here so the migration can recognize and
reproduce it.
"""

import sqlite3

PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner TEXT NOT NULL,
    repo TEXT NOT NULL,
    path TEXT,
    token TEXT,
    database_path TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(owner, repo)
)
"""

ISSUES_DDL = """
CREATE TABLE IF NOT EXISTS issues (
    github_id INTEGER PRIMARY KEY,
    project_id INTEGER REFERENCES projects(id) ON DELETE CASCADE,
    number INTEGER,
    title TEXT,
    body TEXT,
    state TEXT,
    labels TEXT,
    assignees TEXT,
    created_at TEXT,
    updated_at TEXT,
    closed_at TEXT,
    local_modified_at TEXT,
    sync_hash TEXT
)
"""

LEGACY_ISSUES_DDL = """
CREATE TABLE IF NOT EXISTS issues (
    github_id INTEGER PRIMARY KEY,
    number INTEGER,
    title TEXT,
    body TEXT,
    state TEXT,
    labels TEXT,
    assignees TEXT,
    created_at TEXT,
    updated_at TEXT,
    closed_at TEXT
)
"""

ISSUES_PROJECT_INDEX_DDL = "CREATE INDEX IF NOT EXISTS idx_issues_project_id ON issues(project_id)"

PROJECT_REFERENCE_COLUMN = "project_id"

SYNC_STATE_COLUMNS = {
    "local_modified_at": "TEXT",
    "sync_hash": "TEXT",
}


def has_table(conn: sqlite3.Connection, table_name: str) -> bool:
    """Check whether a table exists."""
    row = conn.execute("SELECT COUNT(*) AS count FROM sqlite_master WHERE type = 'table' AND name = ?", (table_name,)).fetchone()
    return bool(row["count"])


def table_columns(conn: sqlite3.Connection, table_name: str) -> list[str]:
    """Return the column names of a table, in declaration order."""
    return [row["name"] for row in conn.execute(f"PRAGMA table_info({table_name})")]


def has_column(conn: sqlite3.Connection, table_name: str, column_name: str) -> bool:
    """Check whether a table has a specific column."""
    return column_name in table_columns(conn, table_name)
