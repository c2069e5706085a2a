"""Contains exceptions raised by the local issue store."""


class DatabaseError(Exception):
    """Raised when a schema, migration, or write operation on the local store fails."""

    pass


class DuplicateProjectError(Exception):
    """Raised when a project with the same owner and repository is already registered."""

    def __init__(self, owner: str, repo: str) -> None:
        """Initializes the exception with the identity of the duplicate project."""
        super().__init__(f"Project {owner}/{repo} already exists")
        self.owner = owner
        self.repo = repo


class ProjectNotFoundError(Exception):
    """Raised when a project lookup in the local store finds nothing."""

    pass


class StoreLockError(DatabaseError):
    """Raised when the single-writer lock on a store file cannot be acquired."""

    pass
