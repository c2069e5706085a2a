"""Unit tests for the githubkit backed remote issue source."""

from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest
from githubkit.exception import RequestTimeout

from pivot_sync.github.adapter import GitHubKitIssueSource
from pivot_sync.github.exceptions import CredentialError, RemoteAccessError, RemoteAPIError, RemoteNotFoundError
from pivot_sync.github.models import CreateIssueRequest


def issue_payload(number: int) -> dict[str, Any]:
    """Minimal REST payload of an issue."""
    return {
        "id": 1000 + number,
        "number": number,
        "title": f"Issue {number}",
        "body": None,
        "state": "open",
        "labels": [{"name": "bug", "color": "d73a4a"}],
        "assignees": [],
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
        "closed_at": None,
    }


def json_response(data: Any) -> MagicMock:
    """A response whose json() returns the given data."""
    response = MagicMock()
    response.json.return_value = data
    return response


@pytest.fixture
def client() -> Any:
    """Patch the client factory with a mocked githubkit client."""
    with patch("pivot_sync.github.adapter.get_github_client") as factory:
        github = MagicMock()
        factory.return_value = github
        yield github


def test_fetch_issues_follows_pagination(client: MagicMock) -> None:
    """Pages are requested until a short page is returned."""
    client.rest.issues.list_for_repo.side_effect = [
        json_response([issue_payload(1), issue_payload(2)]),
        json_response([issue_payload(3)]),
    ]

    issues = GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token", state="open", per_page=2)

    assert [issue["number"] for issue in issues] == [1, 2, 3]
    assert issues[0]["labels"][0]["name"] == "bug"
    assert client.rest.issues.list_for_repo.call_count == 2
    assert client.rest.issues.list_for_repo.call_args.kwargs == {"owner": "acme", "repo": "widgets", "state": "open", "per_page": 2, "page": 2}


def test_fetch_issues_stops_on_empty_page(client: MagicMock) -> None:
    """An empty page ends pagination."""
    client.rest.issues.list_for_repo.side_effect = [json_response([issue_payload(1), issue_payload(2)]), json_response([])]

    issues = GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token", per_page=2)

    assert len(issues) == 2


def test_fetch_issues_caps_page_size(client: MagicMock) -> None:
    """A batch size above the API maximum still collects every page."""
    all_issues = [issue_payload(number) for number in range(1, 251)]

    def list_for_repo(owner: str, repo: str, state: str, per_page: int, page: int) -> MagicMock:
        size = min(per_page, 100)
        return json_response(all_issues[(page - 1) * size : page * size])

    client.rest.issues.list_for_repo.side_effect = list_for_repo

    issues = GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token", per_page=200)

    assert len(issues) == 250
    assert issues[-1]["number"] == 250
    assert client.rest.issues.list_for_repo.call_count == 3
    assert {call.kwargs["per_page"] for call in client.rest.issues.list_for_repo.call_args_list} == {100}


def test_fetch_issues_returns_records_unvalidated(client: MagicMock) -> None:
    """A malformed record is handed back for the caller to reject."""
    client.rest.issues.list_for_repo.side_effect = [json_response([issue_payload(1), {"id": 2}])]

    issues = GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token", per_page=100)

    assert issues == [issue_payload(1), {"id": 2}]


@pytest.mark.parametrize(
    "status_code, expected_type",
    [
        pytest.param(401, CredentialError, id="unauthorized"),
        pytest.param(403, CredentialError, id="forbidden"),
        pytest.param(404, RemoteNotFoundError, id="not found"),
        pytest.param(422, RemoteAPIError, id="unprocessable"),
        pytest.param(500, RemoteAPIError, id="server error"),
    ],
)
def test_fetch_issues_maps_status_codes(
    client: MagicMock,
    status_code: int,
    expected_type: type[Exception],
    make_request_failed: Callable[..., Exception],
) -> None:
    """Failed requests are normalized and carry their status."""
    client.rest.issues.list_for_repo.side_effect = make_request_failed(status_code, "Request failed")

    with pytest.raises(expected_type) as exc_info:
        GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token")

    assert exc_info.value.status == status_code  # type: ignore[attr-defined]


def test_credential_errors_carry_suggestion(client: MagicMock, make_request_failed: Callable[..., Exception]) -> None:
    """Credential failures name the problem and a remedy."""
    client.rest.issues.list_for_repo.side_effect = make_request_failed(401, "Bad credentials")

    with pytest.raises(CredentialError) as exc_info:
        GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token")

    assert exc_info.value.message == "Invalid GitHub token"
    assert exc_info.value.suggestion
    assert "401" in str(exc_info.value)


def test_fetch_issues_timeout(client: MagicMock) -> None:
    """A timeout becomes a transport failure."""
    timeout = RequestTimeout.__new__(RequestTimeout)
    Exception.__init__(timeout, "timed out")
    client.rest.issues.list_for_repo.side_effect = timeout

    with pytest.raises(RemoteAccessError):
        GitHubKitIssueSource().fetch_issues("acme", "widgets", "ghp_token")


@pytest.mark.parametrize("credential", ["", "   "], ids=["empty", "whitespace"])
def test_blank_credential_is_rejected_without_request(client: MagicMock, credential: str) -> None:
    """A blank token fails with 401 before any request."""
    with pytest.raises(CredentialError) as exc_info:
        GitHubKitIssueSource().fetch_issues("acme", "widgets", credential)

    assert exc_info.value.status == 401
    assert "No GitHub token provided" in exc_info.value.message
    client.rest.issues.list_for_repo.assert_not_called()


def test_create_issue_omits_empty_fields(client: MagicMock) -> None:
    """Empty label and assignee lists are not sent."""
    client.rest.issues.create.return_value = json_response({"id": 555, "number": 12, "html_url": "https://github.com/acme/widgets/issues/12"})

    created = GitHubKitIssueSource().create_issue("acme", "widgets", "ghp_token", CreateIssueRequest(title="New", body="Text"))

    assert (created.id, created.number) == (555, 12)
    client.rest.issues.create.assert_called_once_with(owner="acme", repo="widgets", title="New", body="Text")


def test_validate_access_checks_user_then_repository(client: MagicMock) -> None:
    """Access is confirmed against the user and repository endpoints."""
    client.rest.users.get_authenticated.return_value = json_response({"login": "alice"})
    client.rest.repos.get.return_value = json_response({"full_name": "acme/widgets"})

    GitHubKitIssueSource().validate_access("acme", "widgets", "ghp_token")

    client.rest.repos.get.assert_called_once_with(owner="acme", repo="widgets")


def test_validate_access_forbidden_token(client: MagicMock, make_request_failed: Callable[..., Exception]) -> None:
    """A token without permissions is reported as such."""
    client.rest.users.get_authenticated.side_effect = make_request_failed(403, "Resource not accessible by integration")

    with pytest.raises(CredentialError) as exc_info:
        GitHubKitIssueSource().validate_access("acme", "widgets", "ghp_token")

    assert exc_info.value.status == 403
    assert "lacks required permissions" in exc_info.value.message
    client.rest.repos.get.assert_not_called()
