"""Contains exceptions raised when reading the bulk exchange file."""


class CSVFormatError(Exception):
    """Raised when the exchange file is structurally unusable."""

    def __init__(self, message: str, line: int | None = None) -> None:
        """Initializes the exception with the offending line, when one applies."""
        super().__init__(message)
        self.line = line


class EmptyFileError(CSVFormatError):
    """Raised when the exchange file has no content at all."""

    def __init__(self) -> None:
        """Initializes the exception."""
        super().__init__("CSV file is empty")


class MissingColumnError(CSVFormatError):
    """Raised when a required column is absent from the header row."""

    def __init__(self, column: str, headers: list[str]) -> None:
        """Initializes the exception with the missing column and the headers found."""
        super().__init__(f"required column '{column}' not found in CSV headers: {headers}")
        self.column = column
        self.headers = headers


class ColumnCountMismatchError(CSVFormatError):
    """Raised when a data row has a different number of fields than the header."""

    def __init__(self, line: int, expected: int, actual: int) -> None:
        """Initializes the exception with the line number and both field counts."""
        super().__init__(f"line {line}: column count mismatch (expected {expected}, got {actual})", line)
        self.expected = expected
        self.actual = actual


class NoDataRowsError(CSVFormatError):
    """Raised when the exchange file holds a header but no data rows."""

    def __init__(self) -> None:
        """Initializes the exception."""
        super().__init__("CSV file contains no data rows (header-only)")


class RowParseError(Exception):
    """Raised when a data row violates a required-field rule."""

    def __init__(self, line: int, message: str) -> None:
        """Initializes the exception with the line number of the row."""
        super().__init__(f"line {line}: {message}")
        self.line = line
