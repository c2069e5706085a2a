"""Bulk import and export between the exchange file, the remote tracker, and the local store."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import structlog

from pivot_sync.exchange.codec import parse_csv, write_csv
from pivot_sync.exchange.columns import parse_timestamp, render_timestamp
from pivot_sync.exchange.results import ExportResult, ImportResult
from pivot_sync.github.abc import RemoteIssueSource
from pivot_sync.github.exceptions import RemoteError
from pivot_sync.github.models import CreateIssueRequest
from pivot_sync.schemas.exchange import ExchangeIssue
from pivot_sync.store.exceptions import DatabaseError
from pivot_sync.store.issues import list_issues_for_project, upsert_issue
from pivot_sync.store.models import StoredIssue

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def to_create_request(issue: ExchangeIssue) -> CreateIssueRequest:
    """Build the remote create payload for an exchange issue."""
    return CreateIssueRequest(
        title=issue.title,
        body=issue.body,
        labels=list(issue.labels),
        assignees=[issue.assignee] if issue.assignee else [],
    )


def import_csv_to_remote(
    path: Path,
    owner: str,
    repo: str,
    credential: str,
    source: RemoteIssueSource,
    dry_run: bool = False,
) -> ImportResult:
    """Create an issue on the remote tracker for every row of an exchange file.

    The file is parsed in full first, and any parse failure aborts before a
    remote call is made. Outside a dry run, access is validated once; a
    credential failure aborts the import. Each rejected create is recorded
    and the remaining rows still go out. Created issues get their remote id.
    """
    issues = parse_csv(path)
    log = logger.bind(repository=f"{owner}/{repo}", path=str(path), dry_run=dry_run)

    if not dry_run:
        source.validate_access(owner, repo, credential)

    result = ImportResult(issues)
    for issue in issues:
        if dry_run:
            result.skipped += 1
            continue
        try:
            created = source.create_issue(owner, repo, credential, to_create_request(issue))
        except RemoteError as exc:
            result.errors.append(f"Failed to create issue '{issue.title}': {exc}")
            log.warning("Failed to create issue", title=issue.title, error=str(exc))
            continue
        issue.id = created.id
        result.created += 1

    log.info("Imported CSV to GitHub", total=result.total, created=result.created, skipped=result.skipped, errors=len(result.errors))
    return result


def _next_placeholder_id(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT MIN(github_id) AS lowest FROM issues").fetchone()
    lowest = row["lowest"] if row and row["lowest"] is not None else 0
    return min(lowest, 0) - 1


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def exchange_to_stored(issue: ExchangeIssue, project_id: int, github_id: int, modified_at: str) -> StoredIssue:
    """Convert an exchange issue into a locally modified stored issue."""
    return StoredIssue(
        github_id=github_id,
        project_id=project_id,
        number=github_id if github_id > 0 else 0,
        title=issue.title,
        body=issue.body,
        state=issue.state,
        labels=list(issue.labels),
        assignees=[issue.assignee] if issue.assignee else [],
        created_at=render_timestamp(issue.created_at) or modified_at,
        updated_at=render_timestamp(issue.updated_at) or modified_at,
        local_modified_at=modified_at,
    )


def stored_to_exchange(issue: StoredIssue) -> ExchangeIssue:
    """Convert a stored issue into its exchange form. Placeholder ids are left blank."""
    return ExchangeIssue(
        id=issue.github_id if issue.github_id > 0 else 0,
        title=issue.title,
        state=issue.state,
        labels=list(issue.labels),
        assignee=issue.assignees[0] if issue.assignees else "",
        created_at=parse_timestamp(issue.created_at or "", "created_at"),
        updated_at=parse_timestamp(issue.updated_at or "", "updated_at"),
        body=issue.body,
    )


def import_csv_to_store(path: Path, conn: sqlite3.Connection, project_id: int) -> ImportResult:
    """Write every row of an exchange file into the local store without contacting the remote.

    Rows without an id get a negative placeholder id so they never collide with
    remote issues. Each row is written on its own and a failing row is recorded.
    """
    issues = parse_csv(path)
    result = ImportResult(issues)
    modified_at = _utc_now()

    for issue in issues:
        try:
            github_id = issue.id if issue.id else _next_placeholder_id(conn)
            upsert_issue(conn, project_id, exchange_to_stored(issue, project_id, github_id, modified_at))
        except DatabaseError as exc:
            result.errors.append(f"Failed to store issue '{issue.title}': {exc}")
            logger.warning("Failed to store issue", title=issue.title, error=str(exc))
            continue
        result.created += 1

    logger.info("Imported CSV to local store", path=str(path), project_id=project_id, total=result.total, created=result.created)
    return result


def export_store_to_csv(conn: sqlite3.Connection, project_id: int, path: Path, fields: Sequence[str] | None = None) -> ExportResult:
    """Write the cached issues of a project to an exchange file."""
    issues = [stored_to_exchange(issue) for issue in list_issues_for_project(conn, project_id)]
    write_csv(issues, path, fields)
    logger.info("Exported issues to CSV", path=str(path), project_id=project_id, total=len(issues))
    return ExportResult(path, issues)
