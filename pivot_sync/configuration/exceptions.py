"""Contains exceptions raised when resolving the persisted configuration."""

from pathlib import Path


class ConfigNotFoundError(Exception):
    """Raised when none of the recognized configuration files exist."""

    def __init__(self, working_dir: Path, filenames: tuple[str, ...]) -> None:
        """Initializes the exception with the directory and filenames that were searched."""
        super().__init__(f"No configuration file found in {working_dir} (looked for {', '.join(filenames)})")
        self.working_dir = working_dir
        self.filenames = filenames


class ConfigParseError(Exception):
    """Raised when a configuration matches neither the canonical nor the legacy schema."""

    def __init__(self, canonical_error: Exception, legacy_error: Exception) -> None:
        """Initializes the exception with the failure of each schema attempt."""
        super().__init__(
            "Failed to parse configuration as either multi-project or legacy format: "
            f"multi-project: {canonical_error}; legacy: {legacy_error}"
        )
        self.canonical_error = canonical_error
        self.legacy_error = legacy_error


class InvalidConfigError(Exception):
    """Raised when a configuration parses but lacks required elements."""

    def __init__(self, message: str, missing_fields: list[str] | None = None) -> None:
        """Initializes the exception with the names of the missing fields."""
        super().__init__(message)
        self.missing_fields = missing_fields or []
