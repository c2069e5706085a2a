"""Remote issue source backed by the githubkit library."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Literal

import structlog
from githubkit import GitHub
from githubkit.auth import TokenAuthStrategy
from githubkit.exception import RequestError, RequestFailed, RequestTimeout
from pydantic import ValidationError

from pivot_sync.utils.constants import DEFAULT_BATCH_SIZE, MAX_PAGE_SIZE
from pivot_sync.utils.retry import is_rate_limit_failure, response_message, retry_on_rate_limit

from .abc import RemoteIssueSource
from .client import get_github_client
from .exceptions import CredentialError, RemoteAccessError, RemoteAPIError, RemoteNotFoundError
from .models import CreatedIssue, CreateIssueRequest

logger = structlog.get_logger(__name__)

MISSING_TOKEN_SUGGESTION = "Set a token under 'global.token' or on the project in config.yml"
INVALID_TOKEN_SUGGESTION = "Check that the token is correct and has not expired"
FORBIDDEN_TOKEN_SUGGESTION = "Make sure the token has the 'repo' scope for this repository"


def translate_request_failure(exc: RequestFailed, target: str) -> Exception:
    """Map a failed githubkit request onto the remote error hierarchy."""
    status = exc.response.status_code
    if is_rate_limit_failure(exc):
        return RemoteAPIError(f"GitHub rate limit exceeded for {target}", status)
    if status == 401:
        return CredentialError(status, "Invalid GitHub token", INVALID_TOKEN_SUGGESTION)
    if status == 403:
        return CredentialError(status, "Token lacks required permissions", FORBIDDEN_TOKEN_SUGGESTION)
    if status == 404:
        return RemoteNotFoundError(f"{target} not found", status)
    if status == 422:
        try:
            error_data = exc.response.json()
        except ValueError:
            error_data = {}
        errors = error_data.get("errors", []) if isinstance(error_data, dict) else []
        logger.error(
            "GitHub 422 Unprocessable Entity",
            target=target,
            message=response_message(exc),
            errors=errors,
            status_code=422,
        )
    return RemoteAPIError(f"GitHub API error for {target}: {response_message(exc)} (HTTP {status})", status)


@contextmanager
def remote_errors(target: str) -> Iterator[None]:
    """Translate githubkit failures raised in the block into remote errors."""
    try:
        yield
    except RequestFailed as exc:
        raise translate_request_failure(exc, target) from exc
    except RequestTimeout as exc:
        raise RemoteAccessError(f"Timed out talking to GitHub for {target}") from exc
    except RequestError as exc:
        raise RemoteAccessError(f"Could not reach GitHub for {target}: {exc}") from exc
    except ValidationError as exc:
        raise RemoteAPIError(f"Unexpected GitHub response for {target}: {exc}") from exc


def _require_credential(credential: str) -> str:
    token = credential.strip() if credential else ""
    if not token:
        raise CredentialError(401, "No GitHub token provided", MISSING_TOKEN_SUGGESTION)
    return token


class GitHubKitIssueSource(RemoteIssueSource):
    """Remote issue source for GitHub and GitHub Enterprise Server.

    A client is built per call from the credential handed in, since each
    configured project may carry its own token.
    """

    def __init__(self, github_api_url: str | None = None, timeout: float | None = None) -> None:
        """Initialize the source with an optional API URL and request timeout override."""
        self.github_api_url = github_api_url
        self.timeout = timeout

    def _client(self, credential: str) -> GitHub[TokenAuthStrategy]:
        return get_github_client(_require_credential(credential), self.github_api_url, self.timeout)

    @retry_on_rate_limit()
    def _list_page(
        self,
        client: GitHub[TokenAuthStrategy],
        owner: str,
        repo: str,
        state: str,
        per_page: int,
        page: int,
    ) -> list[dict[str, Any]]:
        response = client.rest.issues.list_for_repo(owner=owner, repo=repo, state=state, per_page=per_page, page=page)
        return response.json()

    @retry_on_rate_limit()
    def _create(self, client: GitHub[TokenAuthStrategy], owner: str, repo: str, params: dict[str, Any]) -> dict[str, Any]:
        response = client.rest.issues.create(owner=owner, repo=repo, **params)
        return response.json()

    @retry_on_rate_limit()
    def _get_authenticated_user(self, client: GitHub[TokenAuthStrategy]) -> dict[str, Any]:
        return client.rest.users.get_authenticated().json()

    @retry_on_rate_limit()
    def _get_repository(self, client: GitHub[TokenAuthStrategy], owner: str, repo: str) -> dict[str, Any]:
        return client.rest.repos.get(owner=owner, repo=repo).json()

    def fetch_issues(
        self,
        owner: str,
        repo: str,
        credential: str,
        state: Literal["open", "closed", "all"] = "all",
        per_page: int = DEFAULT_BATCH_SIZE,
    ) -> list[dict[str, Any]]:
        """List all issue records for a repository, handling pagination.

        Records are returned as received, one dict per issue. The page size is
        capped at the API maximum of 100.
        """
        client = self._client(credential)
        target = f"{owner}/{repo}"
        page_size = max(1, min(per_page, MAX_PAGE_SIZE))
        all_issues: list[dict[str, Any]] = []
        page: int = 1
        with remote_errors(target):
            while True:
                issues = self._list_page(client, owner, repo, state, page_size, page)
                if not issues:
                    break
                all_issues.extend(issues)
                if len(issues) < page_size:
                    break
                page += 1
        logger.debug("Fetched issues from GitHub", repository=target, state=state, count=len(all_issues), pages=page)
        return all_issues

    def create_issue(self, owner: str, repo: str, credential: str, request: CreateIssueRequest) -> CreatedIssue:
        """Create an issue for a repository, omitting empty optional fields."""
        client = self._client(credential)
        params = request.model_dump(exclude_none=True)
        params = {key: value for key, value in params.items() if value != []}
        with remote_errors(f"{owner}/{repo}"):
            created = CreatedIssue.model_validate(self._create(client, owner, repo, params))
        logger.info("Created issue on GitHub", repository=f"{owner}/{repo}", number=created.number, title=request.title)
        return created

    def validate_access(self, owner: str, repo: str, credential: str) -> None:
        """Check the token against the authenticated user endpoint, then the repository."""
        client = self._client(credential)
        with remote_errors("authenticated user"):
            user = self._get_authenticated_user(client)
        with remote_errors(f"{owner}/{repo}"):
            self._get_repository(client, owner, repo)
        logger.info("Validated GitHub access", repository=f"{owner}/{repo}", login=user.get("login"))
