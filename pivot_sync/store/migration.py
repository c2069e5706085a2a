"""Schema creation and migration for the local issue store.

A store created before multi-project support has an `issues` table without a
project reference. `migrate_schema` upgrades such a store in one transaction:
every existing issue ends up owned by the project the legacy configuration
described, or by the sentinel project when no such project can be resolved.
"""

import sqlite3

import structlog

from pivot_sync.configuration.models import ProjectConfig
from pivot_sync.store.exceptions import DatabaseError
from pivot_sync.store.schema import (
    ISSUES_DDL,
    ISSUES_PROJECT_INDEX_DDL,
    PROJECT_REFERENCE_COLUMN,
    PROJECTS_DDL,
    SYNC_STATE_COLUMNS,
    has_column,
    has_table,
    table_columns,
)
from pivot_sync.utils.constants import LEGACY_SENTINEL_OWNER, LEGACY_SENTINEL_REPO

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def needs_migration(conn: sqlite3.Connection) -> bool:
    """Return True when the store holds a single-project issues table."""
    return has_table(conn, "issues") and not has_column(conn, "issues", PROJECT_REFERENCE_COLUMN)


def _legacy_owner_repo(legacy_project: ProjectConfig | None) -> tuple[str, str]:
    if legacy_project is not None and legacy_project.owner and legacy_project.repo:
        return legacy_project.owner, legacy_project.repo
    return LEGACY_SENTINEL_OWNER, LEGACY_SENTINEL_REPO


def _resolve_default_project(conn: sqlite3.Connection, legacy_project: ProjectConfig | None) -> int:
    owner, repo = _legacy_owner_repo(legacy_project)
    row = conn.execute("SELECT id FROM projects WHERE owner = ? AND repo = ?", (owner, repo)).fetchone()
    if row:
        return int(row["id"])
    path = legacy_project.path if legacy_project is not None else None
    cursor = conn.execute("INSERT INTO projects (owner, repo, path) VALUES (?, ?, ?)", (owner, repo, path))
    if cursor.lastrowid is None:
        raise sqlite3.OperationalError(f"insert of default project {owner}/{repo} returned no row id")
    return cursor.lastrowid


def _add_missing_sync_columns(conn: sqlite3.Connection) -> list[str]:
    existing = set(table_columns(conn, "issues"))
    added = []
    for column, column_type in SYNC_STATE_COLUMNS.items():
        if column not in existing:
            conn.execute(f"ALTER TABLE issues ADD COLUMN {column} {column_type}")
            added.append(column)
    return added


def migrate_schema(conn: sqlite3.Connection, legacy_project: ProjectConfig | None = None) -> bool:
    """Upgrade a single-project store to the multi-project schema.

    Running it against an already migrated store is a no-op.

    Args:
        conn: Autocommit connection to the store.
        legacy_project: The project described by the legacy configuration, if any.

    Returns:
        True when a migration was applied, False when the store was already current.

    Raises:
        DatabaseError: If any step fails. The transaction is rolled back and the
            store keeps its prior schema.
    """
    if not needs_migration(conn):
        logger.debug("Store schema is current, no migration needed")
        return False

    logger.info("Migrating store to multi-project schema")
    try:
        conn.execute("BEGIN IMMEDIATE")
        conn.execute(PROJECTS_DDL)
        conn.execute(f"ALTER TABLE issues ADD COLUMN {PROJECT_REFERENCE_COLUMN} INTEGER REFERENCES projects(id) ON DELETE CASCADE")
        _add_missing_sync_columns(conn)
        project_id = _resolve_default_project(conn, legacy_project)
        cursor = conn.execute(f"UPDATE issues SET {PROJECT_REFERENCE_COLUMN} = ?", (project_id,))
        conn.execute(ISSUES_PROJECT_INDEX_DDL)
        conn.execute("COMMIT")
    except sqlite3.Error as exc:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.error("Store migration failed, rolled back", error=str(exc))
        raise DatabaseError(f"Failed to migrate store schema: {exc}") from exc

    logger.info("Migrated store to multi-project schema", project_id=project_id, migrated_issues=cursor.rowcount)
    return True


def initialize_store(conn: sqlite3.Connection, legacy_project: ProjectConfig | None = None) -> None:
    """Bring a store of any generation up to the current schema.

    A single-project store is migrated before anything else is created, so a
    failed migration leaves it exactly as it was. A fresh store gets both
    tables. A multi-project store that predates the sync-state columns gets
    them added.

    Raises:
        DatabaseError: If schema creation or migration fails.
    """
    if needs_migration(conn):
        migrate_schema(conn, legacy_project)

    try:
        conn.execute(PROJECTS_DDL)
        if not has_table(conn, "issues"):
            conn.execute(ISSUES_DDL)
            conn.execute(ISSUES_PROJECT_INDEX_DDL)
            logger.info("Created store schema")
            return
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to create store schema: {exc}") from exc

    try:
        added = _add_missing_sync_columns(conn)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to add sync columns: {exc}") from exc
    if added:
        logger.info("Added sync columns to issues table", columns=added)
