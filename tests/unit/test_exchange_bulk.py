"""Unit tests for bulk import and export of exchange files."""

import sqlite3
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pivot_sync.configuration.models import ProjectConfig
from pivot_sync.exchange.bulk import export_store_to_csv, import_csv_to_remote, import_csv_to_store
from pivot_sync.exchange.codec import parse_csv
from pivot_sync.exchange.exceptions import RowParseError
from pivot_sync.github.abc import RemoteIssueSource
from pivot_sync.github.exceptions import CredentialError, RemoteAPIError
from pivot_sync.github.models import CreatedIssue, CreateIssueRequest
from pivot_sync.store.issues import get_issue, list_issues_for_project, upsert_issue
from pivot_sync.store.models import StoredIssue
from pivot_sync.store.projects import add_project

CSV_CONTENT = 'title,body,labels,assignee\nFix login,Broken on Safari,"bug, ui",alice\nAdd export,,,\nDocs,Write them,docs,\n'


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    """An exchange file with three rows."""
    path = tmp_path / "issues.csv"
    path.write_text(CSV_CONTENT, encoding="utf-8")
    return path


@pytest.fixture
def source() -> MagicMock:
    """A remote source that creates issues with increasing ids."""
    remote = MagicMock(spec=RemoteIssueSource)
    remote.create_issue.side_effect = [CreatedIssue(id=900 + number, number=number) for number in range(1, 10)]
    return remote


@pytest.fixture
def project_id(store: sqlite3.Connection) -> int:
    """Identifier of a registered project."""
    return add_project(store, ProjectConfig(owner="acme", repo="widgets"))


def test_import_creates_every_row(csv_path: Path, source: MagicMock) -> None:
    """Each row becomes a create request and gets its remote id."""
    result = import_csv_to_remote(csv_path, "acme", "widgets", "ghp_token", source)

    assert (result.total, result.created, result.skipped, result.errors) == (3, 3, 0, [])
    assert [issue.id for issue in result.issues] == [901, 902, 903]
    source.validate_access.assert_called_once_with("acme", "widgets", "ghp_token")
    first_request = source.create_issue.call_args_list[0].args[3]
    assert first_request == CreateIssueRequest(title="Fix login", body="Broken on Safari", labels=["bug", "ui"], assignees=["alice"])
    assert source.create_issue.call_args_list[1].args[3].assignees == []


def test_import_dry_run_makes_no_remote_calls(csv_path: Path, source: MagicMock) -> None:
    """A dry run parses the file and skips every row."""
    result = import_csv_to_remote(csv_path, "acme", "widgets", "", source, dry_run=True)

    assert (result.total, result.created, result.skipped) == (3, 0, 3)
    assert source.method_calls == []


def test_import_aborts_on_credential_failure(csv_path: Path, source: MagicMock) -> None:
    """A rejected credential stops the import before any create."""
    source.validate_access.side_effect = CredentialError(401, "Invalid GitHub token", "Check the token")

    with pytest.raises(CredentialError):
        import_csv_to_remote(csv_path, "acme", "widgets", "ghp_bad", source)

    source.create_issue.assert_not_called()


def test_import_aborts_on_parse_failure(tmp_path: Path, source: MagicMock) -> None:
    """A parse failure stops the import before any remote call."""
    path = tmp_path / "bad.csv"
    path.write_text("title\nFirst\n\"\"\n", encoding="utf-8")

    with pytest.raises(RowParseError):
        import_csv_to_remote(path, "acme", "widgets", "ghp_token", source)

    assert source.method_calls == []


def test_import_collects_rejected_creates(csv_path: Path, source: MagicMock) -> None:
    """A rejected create is recorded by title and the rest still go out."""
    source.create_issue.side_effect = [
        CreatedIssue(id=901, number=1),
        RemoteAPIError("Validation Failed (HTTP 422)", 422),
        CreatedIssue(id=903, number=3),
    ]

    result = import_csv_to_remote(csv_path, "acme", "widgets", "ghp_token", source)

    assert result.created == 2
    assert result.errors == ["Failed to create issue 'Add export': Validation Failed (HTTP 422)"]
    assert [issue.id for issue in result.issues] == [901, 0, 903]


def test_import_to_store_marks_local_changes(csv_path: Path, store: sqlite3.Connection, project_id: int) -> None:
    """Rows land in the store as locally modified issues with placeholder ids."""
    upsert_issue(store, project_id, StoredIssue(github_id=-4, title="Earlier placeholder"))

    result = import_csv_to_store(csv_path, store, project_id)

    assert (result.total, result.created, result.errors) == (3, 3, [])
    issues = list_issues_for_project(store, project_id)
    imported = [issue for issue in issues if issue.title != "Earlier placeholder"]
    assert sorted(issue.github_id for issue in imported) == [-7, -6, -5]
    assert all(issue.local_modified_at for issue in imported)
    login = next(issue for issue in imported if issue.title == "Fix login")
    assert login.labels == ["bug", "ui"]
    assert login.assignees == ["alice"]


def test_import_to_store_uses_id_column(tmp_path: Path, store: sqlite3.Connection, project_id: int) -> None:
    """A row with an id overwrites the cached issue with that id."""
    upsert_issue(store, project_id, StoredIssue(github_id=55, number=55, title="Old title"))
    path = tmp_path / "issues.csv"
    path.write_text("id,title,state\n55,New title,closed\n", encoding="utf-8")

    import_csv_to_store(path, store, project_id)

    issue = get_issue(store, 55)
    assert issue is not None
    assert (issue.title, issue.state) == ("New title", "closed")
    assert issue.local_modified_at is not None


def test_export_store_to_csv(tmp_path: Path, store: sqlite3.Connection, project_id: int) -> None:
    """Cached issues are written with the codec and parse back."""
    upsert_issue(
        store,
        project_id,
        StoredIssue(
            github_id=101,
            number=1,
            title="Fix login",
            state="open",
            labels=["bug", "ui"],
            assignees=["alice", "bob"],
            created_at="2024-01-01T00:00:00Z",
        ),
    )
    upsert_issue(store, project_id, StoredIssue(github_id=-1, title="Local draft"))
    path = tmp_path / "export.csv"

    result = export_store_to_csv(store, project_id, path)

    assert (result.total, result.file_path) == (2, path)
    parsed = parse_csv(path)
    assert [(issue.id, issue.title) for issue in parsed] == [(0, "Local draft"), (101, "Fix login")]
    assert parsed[1].labels == ["bug", "ui"]
    assert parsed[1].assignee == "alice"


def test_export_store_to_csv_with_fields(tmp_path: Path, store: sqlite3.Connection, project_id: int) -> None:
    """Only the requested columns are written."""
    upsert_issue(store, project_id, StoredIssue(github_id=101, number=1, title="Fix login"))
    path = tmp_path / "export.csv"

    export_store_to_csv(store, project_id, path, ["title", "state"])

    assert path.read_text(encoding="utf-8") == "title,state\nFix login,open\n"
