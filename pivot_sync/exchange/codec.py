"""Reads, validates, and writes the bulk exchange file.

The exchange file is UTF-8 CSV with an optional byte-order mark and a header
row. Header names are matched case-insensitively after trimming. Line numbers
count records: the header is line 1 and the first data row is line 2.
"""

import csv
from collections.abc import Iterator
from pathlib import Path
from typing import Sequence

import structlog

from pivot_sync.exchange.columns import COLUMNS, render_column
from pivot_sync.exchange.exceptions import (
    ColumnCountMismatchError,
    CSVFormatError,
    EmptyFileError,
    MissingColumnError,
    NoDataRowsError,
    RowParseError,
)
from pivot_sync.schemas.exchange import ExchangeIssue
from pivot_sync.utils.constants import DEFAULT_EXCHANGE_COLUMNS, REQUIRED_EXCHANGE_COLUMN

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# utf-8-sig drops a leading byte-order mark and reads plain UTF-8 unchanged.
ENCODING = "utf-8-sig"


def _read_records(path: Path) -> Iterator[tuple[int, list[str]]]:
    """Yield (line, record) pairs, skipping blank lines."""
    if path.stat().st_size == 0:
        raise EmptyFileError()
    with open(path, encoding=ENCODING, newline="") as csv_file:
        reader = csv.reader(csv_file)
        line = 1
        while True:
            try:
                record = next(reader)
            except StopIteration:
                return
            except UnicodeDecodeError as exc:
                raise CSVFormatError(f"line {line}: invalid UTF-8 in CSV file: {exc.reason}", line) from exc
            except csv.Error as exc:
                raise CSVFormatError(f"error reading CSV line {line}: {exc}", line) from exc
            if not record:
                continue
            yield line, record
            line += 1


def _header_index(headers: list[str]) -> dict[str, int]:
    """Map cleaned header names to their positions. The first occurrence of a name wins."""
    index: dict[str, int] = {}
    for position, header in enumerate(headers):
        name = header.strip().lower()
        if name and name not in index:
            index[name] = position
    return index


def _read_header(records: Iterator[tuple[int, list[str]]]) -> tuple[list[str], dict[str, int]]:
    try:
        _, headers = next(records)
    except StopIteration:
        raise EmptyFileError() from None
    index = _header_index(headers)
    if REQUIRED_EXCHANGE_COLUMN not in index:
        raise MissingColumnError(REQUIRED_EXCHANGE_COLUMN, headers)
    return headers, index


def validate_csv(path: Path) -> int:
    """Check the structure of an exchange file without building any issues.

    Returns:
        The number of data rows.

    Raises:
        EmptyFileError: If the file has zero length.
        MissingColumnError: If no header is named 'title'.
        ColumnCountMismatchError: If a data row's field count differs from the header's.
        NoDataRowsError: If the file holds only a header.
    """
    records = _read_records(path)
    headers, _ = _read_header(records)
    row_count = 0
    for line, record in records:
        if len(record) != len(headers):
            raise ColumnCountMismatchError(line, len(headers), len(record))
        row_count += 1
    if row_count == 0:
        raise NoDataRowsError()
    logger.debug("Validated CSV file", path=str(path), rows=row_count, columns=len(headers))
    return row_count


def _parse_record(record: list[str], index: dict[str, int], line: int) -> ExchangeIssue:
    def cell(column: str) -> str:
        position = index.get(column)
        if position is None or position >= len(record):
            return ""
        return record[position].strip()

    title = cell(REQUIRED_EXCHANGE_COLUMN)
    if not title:
        raise RowParseError(line, "title is required")

    issue = ExchangeIssue(title=title)
    for column, accessor in COLUMNS.items():
        if column in index:
            accessor.apply(issue, cell(column))
    return issue


def parse_csv(path: Path) -> list[ExchangeIssue]:
    """Parse an exchange file into issues, preserving row order.

    Parsing stops at the first row with a blank title.

    Raises:
        CSVFormatError: If the file is empty, lacks the title column, or a row
            has a different field count than the header.
        RowParseError: If a row has a blank title.
    """
    records = _read_records(path)
    headers, index = _read_header(records)
    issues: list[ExchangeIssue] = []
    for line, record in records:
        if len(record) != len(headers):
            raise ColumnCountMismatchError(line, len(headers), len(record))
        issues.append(_parse_record(record, index, line))
    logger.info("Parsed CSV file", path=str(path), issues=len(issues))
    return issues


def write_csv(issues: Sequence[ExchangeIssue], path: Path, fields: Sequence[str] | None = None) -> None:
    """Write issues to an exchange file.

    Args:
        issues: Issues to write, one row each, in order.
        path: Destination file, overwritten if it exists.
        fields: Column subset to write. Defaults to every exchange column in canonical order.
    """
    columns = list(fields) if fields else list(DEFAULT_EXCHANGE_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as csv_file:
        writer = csv.writer(csv_file, lineterminator="\n")
        writer.writerow(columns)
        for issue in issues:
            writer.writerow([render_column(issue, column) for column in columns])
    logger.info("Wrote CSV file", path=str(path), issues=len(issues), columns=len(columns))
