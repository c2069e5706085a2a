"""Issue upsert and query operations on the local issue store."""

import sqlite3
from typing import Any

import structlog

from pivot_sync.store.exceptions import DatabaseError
from pivot_sync.store.models import StoredIssue, join_names, split_names

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_ISSUE_COLUMNS = (
    "github_id, project_id, number, title, body, state, labels, assignees, created_at, updated_at, closed_at, local_modified_at, sync_hash"
)

_UPSERT_ISSUE = f"""
INSERT INTO issues ({_ISSUE_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(github_id) DO UPDATE SET
    project_id = excluded.project_id,
    number = excluded.number,
    title = excluded.title,
    body = excluded.body,
    state = excluded.state,
    labels = excluded.labels,
    assignees = excluded.assignees,
    created_at = excluded.created_at,
    updated_at = excluded.updated_at,
    closed_at = excluded.closed_at,
    local_modified_at = excluded.local_modified_at,
    sync_hash = excluded.sync_hash
"""


def _row_to_issue(row: dict[str, Any]) -> StoredIssue:
    data = dict(row)
    data["labels"] = split_names(row["labels"])
    data["assignees"] = split_names(row["assignees"])
    data["body"] = row["body"] or ""
    data["state"] = row["state"] or "open"
    data["number"] = row["number"] or 0
    return StoredIssue.model_validate(data)


def upsert_issue(conn: sqlite3.Connection, project_id: int, issue: StoredIssue) -> None:
    """Insert an issue, or overwrite every mutable field of the row with the same remote id.

    The statement commits on its own; there is no merge with the existing row.

    Raises:
        DatabaseError: If the write fails.
    """
    try:
        conn.execute(
            _UPSERT_ISSUE,
            (
                issue.github_id,
                project_id,
                issue.number,
                issue.title,
                issue.body,
                issue.state,
                join_names(issue.labels),
                join_names(issue.assignees),
                issue.created_at,
                issue.updated_at,
                issue.closed_at,
                issue.local_modified_at,
                issue.sync_hash,
            ),
        )
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to save issue {issue.github_id}: {exc}") from exc
    logger.debug("Saved issue", github_id=issue.github_id, number=issue.number, project_id=project_id)


def get_issue(conn: sqlite3.Connection, github_id: int) -> StoredIssue | None:
    """Return the cached issue with the given remote id."""
    row = conn.execute(f"SELECT {_ISSUE_COLUMNS} FROM issues WHERE github_id = ?", (github_id,)).fetchone()
    return _row_to_issue(row) if row else None


def list_issues_for_project(conn: sqlite3.Connection, project_id: int) -> list[StoredIssue]:
    """Return the cached issues of a project ordered by issue number."""
    rows = conn.execute(f"SELECT {_ISSUE_COLUMNS} FROM issues WHERE project_id = ? ORDER BY number, github_id", (project_id,)).fetchall()
    return [_row_to_issue(row) for row in rows]


def count_issues(conn: sqlite3.Connection, project_id: int | None = None) -> int:
    """Count cached issues, optionally restricted to one project."""
    if project_id is None:
        row = conn.execute("SELECT COUNT(*) AS count FROM issues").fetchone()
    else:
        row = conn.execute("SELECT COUNT(*) AS count FROM issues WHERE project_id = ?", (project_id,)).fetchone()
    return int(row["count"])
