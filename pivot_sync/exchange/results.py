"""Contains results of bulk import and export runs."""

from pathlib import Path

from pivot_sync.schemas.exchange import ExchangeIssue


class ImportResult:
    """Contains the outcome of importing an exchange file."""

    def __init__(self, issues: list[ExchangeIssue]) -> None:
        """Initialize the result with the parsed issues and zeroed counters."""
        self.total = len(issues)
        self.created = 0
        self.skipped = 0
        self.errors: list[str] = []
        self.issues = issues


class ExportResult:
    """Contains the outcome of exporting issues to an exchange file."""

    def __init__(self, file_path: Path, issues: list[ExchangeIssue]) -> None:
        """Initialize the result with the written file and the exported issues."""
        self.total = len(issues)
        self.file_path = file_path
        self.issues = issues
