"""Contains results of the synchronization workflow."""

from pivot_sync.configuration.models import ProjectConfig


class IssueSyncError:
    """A single issue that could not be normalized or stored."""

    def __init__(self, github_id: int | None, number: int | None, message: str) -> None:
        """Initialize the error with the identity of the failing issue and the reason."""
        self.github_id = github_id
        self.number = number
        self.message = message

    def __str__(self) -> str:
        """Render the error with the issue number when known."""
        if self.number is not None:
            return f"issue #{self.number}: {self.message}"
        return self.message


class ProjectSyncResult:
    """Contains the outcome of synchronizing one project."""

    def __init__(self, project: ProjectConfig) -> None:
        """Initialize an empty result for the project."""
        self.project = project
        self.fetched = 0
        self.upserted = 0
        self.errors: list[IssueSyncError] = []
        self.failure: Exception | None = None

    @property
    def succeeded(self) -> bool:
        """Return True when the project was fetched and processed."""
        return self.failure is None

    @property
    def failure_message(self) -> str | None:
        """Return the project failure annotated with the project identity."""
        if self.failure is None:
            return None
        return f"{self.project.full_name}: {self.failure}"


class SyncReport:
    """Contains per-project outcomes of a synchronization run."""

    def __init__(self, results: list[ProjectSyncResult] | None = None) -> None:
        """Initialize the report with per-project results."""
        self.results = results or []

    @property
    def succeeded(self) -> list[ProjectSyncResult]:
        """Return the projects that synchronized."""
        return [result for result in self.results if result.succeeded]

    @property
    def failed(self) -> list[ProjectSyncResult]:
        """Return the projects that aborted."""
        return [result for result in self.results if not result.succeeded]

    @property
    def total_fetched(self) -> int:
        """Return the number of issues fetched across all projects."""
        return sum(result.fetched for result in self.results)

    @property
    def total_upserted(self) -> int:
        """Return the number of issues written across all projects."""
        return sum(result.upserted for result in self.results)

    @property
    def total_issue_errors(self) -> int:
        """Return the number of per-issue failures across all projects."""
        return sum(len(result.errors) for result in self.results)
