"""Pulls issues of one project from the remote issue tracker into the local store."""

import hashlib
import json
import sqlite3
import time
from typing import Any

import structlog
from pydantic import ValidationError

from pivot_sync.configuration.models import PivotConfig, ProjectConfig
from pivot_sync.github.abc import RemoteIssueSource
from pivot_sync.github.adapter import MISSING_TOKEN_SUGGESTION
from pivot_sync.github.exceptions import CredentialError, RemoteError
from pivot_sync.github.models import RemoteIssue
from pivot_sync.store.exceptions import DatabaseError, DuplicateProjectError
from pivot_sync.store.issues import upsert_issue
from pivot_sync.store.models import StoredIssue
from pivot_sync.store.projects import ensure_project
from pivot_sync.synchronize.results import IssueSyncError, ProjectSyncResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

SYNC_HASH_FIELDS = ("title", "body", "state", "labels", "assignees", "created_at", "updated_at", "closed_at")


def compute_sync_hash(issue: StoredIssue) -> str:
    """Return the SHA-256 digest of the canonical JSON of the synchronized fields."""
    payload = issue.model_dump(include=set(SYNC_HASH_FIELDS))
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _record_identity(record: Any) -> tuple[int | None, int | None]:
    if not isinstance(record, dict):
        return None, None
    github_id, number = record.get("id"), record.get("number")
    return (github_id if isinstance(github_id, int) else None, number if isinstance(number, int) else None)


def normalize_remote_issue(record: RemoteIssue | dict[str, Any], project_id: int) -> StoredIssue:
    """Flatten a remote issue record into its stored form.

    Label and assignee sub-records become ordered name lists. Order is kept and
    duplicates are not removed.

    Raises:
        ValidationError: If the record is not a well-formed issue.
    """
    remote_issue = RemoteIssue.model_validate(record)
    issue = StoredIssue(
        github_id=remote_issue.id,
        project_id=project_id,
        number=remote_issue.number,
        title=remote_issue.title,
        body=remote_issue.body or "",
        state=remote_issue.state,
        labels=[label.name for label in remote_issue.labels],
        assignees=[user.login for user in remote_issue.assignees],
        created_at=remote_issue.created_at,
        updated_at=remote_issue.updated_at,
        closed_at=remote_issue.closed_at,
    )
    issue.sync_hash = compute_sync_hash(issue)
    return issue


def sync_project(conn: sqlite3.Connection, config: PivotConfig, project: ProjectConfig, source: RemoteIssueSource) -> ProjectSyncResult:
    """Synchronize one project's remote issues into the store.

    A missing credential or a remote failure aborts this project only and is
    recorded as its failure. Each issue is then written on its own, so a
    failing issue is recorded and the rest still land.
    """
    result = ProjectSyncResult(project)
    log = logger.bind(project=project.full_name)

    credential = project.effective_token(config.global_)
    if not credential:
        result.failure = CredentialError(401, "No GitHub token provided", MISSING_TOKEN_SUGGESTION)
        log.error("Skipping project without a GitHub token")
        return result

    state = "all" if config.global_.include_closed else "open"
    start_time = time.time()
    try:
        remote_issues = source.fetch_issues(project.owner, project.repo, credential, state=state, per_page=config.global_.batch_size)
    except RemoteError as exc:
        result.failure = exc
        log.error("Failed to fetch issues", error=str(exc), error_type=type(exc).__name__)
        return result
    result.fetched = len(remote_issues)

    try:
        project_id = ensure_project(conn, project)
    except (DatabaseError, DuplicateProjectError) as exc:
        result.failure = exc
        log.error("Failed to register project in store", error=str(exc))
        return result

    for record in remote_issues:
        try:
            issue = normalize_remote_issue(record, project_id)
            upsert_issue(conn, project_id, issue)
        except (ValidationError, DatabaseError) as exc:
            github_id, number = _record_identity(record)
            result.errors.append(IssueSyncError(github_id, number, str(exc)))
            log.warning("Failed to store issue", number=number, github_id=github_id, error=str(exc))
            continue
        result.upserted += 1

    log.info(
        "Synchronized project",
        state=state,
        fetched=result.fetched,
        upserted=result.upserted,
        errors=len(result.errors),
        duration=round(time.time() - start_time, 2),
    )
    return result
