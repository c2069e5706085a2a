"""Unit tests for the project registry and issue upserts of the local store."""

import sqlite3

import pytest
from pydantic import ValidationError

from pivot_sync.configuration.models import ProjectConfig
from pivot_sync.store.exceptions import DuplicateProjectError, ProjectNotFoundError
from pivot_sync.store.issues import count_issues, get_issue, list_issues_for_project, upsert_issue
from pivot_sync.store.models import StoredIssue
from pivot_sync.store.projects import (
    add_project,
    delete_project,
    ensure_project,
    find_project,
    find_project_by_path,
    get_project_id,
    list_projects,
    update_project,
)


def make_issue(github_id: int = 1, **overrides: object) -> StoredIssue:
    """Build a stored issue with sensible defaults."""
    data: dict[str, object] = {
        "github_id": github_id,
        "number": github_id,
        "title": f"Issue {github_id}",
        "body": "Body",
        "state": "open",
        "labels": ["bug"],
        "assignees": ["alice"],
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
    }
    data.update(overrides)
    return StoredIssue.model_validate(data)


@pytest.fixture
def project_id(store: sqlite3.Connection) -> int:
    """Identifier of a registered project."""
    return add_project(store, ProjectConfig(owner="acme", repo="widgets", path="/src/widgets"))


def test_add_project_rejects_duplicate(store: sqlite3.Connection, project_id: int) -> None:
    """The same owner and repo cannot be registered twice."""
    with pytest.raises(DuplicateProjectError) as exc_info:
        add_project(store, ProjectConfig(owner="acme", repo="widgets"))

    assert (exc_info.value.owner, exc_info.value.repo) == ("acme", "widgets")
    assert len(list_projects(store)) == 1


def test_ensure_project_returns_existing_row(store: sqlite3.Connection, project_id: int) -> None:
    """An existing project is looked up and left unchanged."""
    assert ensure_project(store, ProjectConfig(owner="acme", repo="widgets", path="/elsewhere")) == project_id

    project = find_project(store, "acme", "widgets")
    assert project is not None
    assert project.path == "/src/widgets"
    assert find_project_by_path(store, "/src/widgets") == project


def test_update_project(store: sqlite3.Connection, project_id: int) -> None:
    """Updating a registered project overwrites its attributes."""
    update_project(store, ProjectConfig(owner="acme", repo="widgets", path="/new", token="ghp_new"))

    project = find_project(store, "acme", "widgets")
    assert project is not None
    assert (project.path, project.token) == ("/new", "ghp_new")


def test_update_and_lookup_unknown_project(store: sqlite3.Connection) -> None:
    """Operations on an unregistered project raise ProjectNotFoundError."""
    with pytest.raises(ProjectNotFoundError):
        update_project(store, ProjectConfig(owner="acme", repo="missing"))
    with pytest.raises(ProjectNotFoundError):
        get_project_id(store, "acme", "missing")
    with pytest.raises(ProjectNotFoundError):
        delete_project(store, "acme", "missing")


def test_upsert_inserts_then_overwrites(store: sqlite3.Connection, project_id: int) -> None:
    """A second upsert with the same remote id replaces every mutable field."""
    upsert_issue(store, project_id, make_issue(42, local_modified_at="2024-02-01T00:00:00Z"))
    upsert_issue(
        store,
        project_id,
        make_issue(42, title="Renamed", state="closed", labels=[], assignees=["bob"], closed_at="2024-03-01T00:00:00Z", sync_hash="abc"),
    )

    assert count_issues(store) == 1
    issue = get_issue(store, 42)
    assert issue is not None
    assert issue.title == "Renamed"
    assert issue.state == "closed"
    assert issue.labels == []
    assert issue.assignees == ["bob"]
    assert issue.closed_at == "2024-03-01T00:00:00Z"
    assert issue.local_modified_at is None
    assert issue.sync_hash == "abc"


def test_upsert_keeps_label_order_and_duplicates(store: sqlite3.Connection, project_id: int) -> None:
    """Labels and assignees come back in source order without de-duplication."""
    upsert_issue(store, project_id, make_issue(7, labels=["ui", "bug", "ui"], assignees=["bob", "alice"]))

    issue = get_issue(store, 7)
    assert issue is not None
    assert issue.labels == ["ui", "bug", "ui"]
    assert issue.assignees == ["bob", "alice"]


def test_list_issues_is_scoped_to_project(store: sqlite3.Connection, project_id: int) -> None:
    """Issues of other projects are not listed."""
    other_id = add_project(store, ProjectConfig(owner="acme", repo="gadgets"))
    upsert_issue(store, project_id, make_issue(2))
    upsert_issue(store, project_id, make_issue(1))
    upsert_issue(store, other_id, make_issue(3))

    assert [issue.github_id for issue in list_issues_for_project(store, project_id)] == [1, 2]
    assert count_issues(store, other_id) == 1


def test_delete_project_cascades_to_issues(store: sqlite3.Connection, project_id: int) -> None:
    """Deleting a project deletes its cached issues."""
    upsert_issue(store, project_id, make_issue(1))
    upsert_issue(store, project_id, make_issue(2))

    delete_project(store, "acme", "widgets")

    assert count_issues(store) == 0
    assert list_projects(store) == []


def test_stored_issue_requires_title() -> None:
    """An empty title is rejected."""
    with pytest.raises(ValidationError):
        make_issue(1, title="")
