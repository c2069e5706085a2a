"""Base ABC for remote issue sources."""

from abc import ABC, abstractmethod
from typing import Any, Literal

from pivot_sync.utils.constants import DEFAULT_BATCH_SIZE

from .models import CreatedIssue, CreateIssueRequest


class RemoteIssueSource(ABC):
    """Base ABC for remote issue sources.

    Implementations normalize every failure into the `RemoteError` hierarchy.
    """

    @abstractmethod
    def fetch_issues(
        self,
        owner: str,
        repo: str,
        credential: str,
        state: Literal["open", "closed", "all"] = "all",
        per_page: int = DEFAULT_BATCH_SIZE,
    ) -> list[dict[str, Any]]:
        """Fetch every issue record of a repository, following pagination.

        Records are left unvalidated; callers validate each one as a `RemoteIssue`.
        """
        pass

    @abstractmethod
    def create_issue(self, owner: str, repo: str, credential: str, request: CreateIssueRequest) -> CreatedIssue:
        """Create an issue in a repository."""
        pass

    @abstractmethod
    def validate_access(self, owner: str, repo: str, credential: str) -> None:
        """Confirm the credential is accepted and can see the repository."""
        pass
