"""Contains exceptions raised when talking to the remote issue tracker."""


class RemoteError(Exception):
    """Base class for failures reported by the remote issue tracker or the transport to it."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initializes the exception with the HTTP status, when one was received."""
        super().__init__(message)
        self.status = status


class RemoteAccessError(RemoteError):
    """Raised when the remote issue tracker cannot be reached or does not answer in time."""

    pass


class RemoteAPIError(RemoteError):
    """Raised when the remote issue tracker answers with a non-success status."""

    pass


class RemoteNotFoundError(RemoteAPIError):
    """Raised when the requested repository or resource does not exist."""

    pass


class CredentialError(RemoteError):
    """Raised when the credential is missing, invalid, or lacks permissions."""

    def __init__(self, status: int, message: str, suggestion: str) -> None:
        """Initializes the exception with a remediation suggestion for the user."""
        super().__init__(message, status)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        """Render the failure together with its remediation suggestion."""
        return f"{self.message} (HTTP {self.status}). {self.suggestion}"
