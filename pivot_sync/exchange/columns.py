"""Static column table of the bulk exchange format.

Every column maps to a pair of accessors: `render` turns the issue field into
cell text, `apply` parses trimmed cell text into the issue field. Parsing is
forgiving: malformed numbers, dependency tokens, and timestamps fall back to
the zero value of their field.
"""

import re
from datetime import datetime, timedelta
from typing import Callable, NamedTuple

import structlog

from pivot_sync.schemas.exchange import ExchangeIssue
from pivot_sync.utils.constants import DEFAULT_ISSUE_STATE, LIST_SEPARATOR

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

RFC3339_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$")


class ColumnAccessor(NamedTuple):
    """Render and apply functions of one exchange column."""

    render: Callable[[ExchangeIssue], str]
    apply: Callable[[ExchangeIssue, str], None]


def parse_int(value: str, column: str) -> int:
    """Parse an integer cell, returning 0 when it is blank or malformed."""
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        logger.debug("Ignoring malformed integer", column=column, value=value)
        return 0


def parse_timestamp(value: str, column: str) -> datetime | None:
    """Parse an RFC 3339 timestamp cell, returning None when it is blank or malformed."""
    if not value:
        return None
    if not RFC3339_PATTERN.match(value):
        logger.debug("Ignoring malformed timestamp", column=column, value=value)
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring malformed timestamp", column=column, value=value)
        return None


def split_labels(value: str) -> list[str]:
    """Split a label cell on commas, trimming tokens and dropping empty ones."""
    return [token.strip() for token in value.split(LIST_SEPARATOR) if token.strip()]


def split_dependencies(value: str) -> list[int]:
    """Split a dependency cell into issue numbers, skipping non-numeric tokens."""
    dependencies = []
    for token in split_labels(value):
        try:
            dependencies.append(int(token))
        except ValueError:
            logger.debug("Ignoring non-numeric dependency", value=token)
    return dependencies


def render_int(value: int) -> str:
    """Render an integer, leaving zero blank."""
    return str(value) if value else ""


def render_timestamp(value: datetime | None) -> str:
    """Render a timestamp in RFC 3339 form, leaving None blank."""
    if value is None:
        return ""
    if value.utcoffset() == timedelta(0):
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")
    return value.isoformat(timespec="seconds")


def _text_column(field: str) -> ColumnAccessor:
    def render(issue: ExchangeIssue) -> str:
        return getattr(issue, field)

    def apply(issue: ExchangeIssue, value: str) -> None:
        setattr(issue, field, value)

    return ColumnAccessor(render, apply)


def _int_column(field: str) -> ColumnAccessor:
    def render(issue: ExchangeIssue) -> str:
        return render_int(getattr(issue, field))

    def apply(issue: ExchangeIssue, value: str) -> None:
        setattr(issue, field, parse_int(value, field))

    return ColumnAccessor(render, apply)


def _timestamp_column(field: str) -> ColumnAccessor:
    def render(issue: ExchangeIssue) -> str:
        return render_timestamp(getattr(issue, field))

    def apply(issue: ExchangeIssue, value: str) -> None:
        setattr(issue, field, parse_timestamp(value, field))

    return ColumnAccessor(render, apply)


def _apply_state(issue: ExchangeIssue, value: str) -> None:
    issue.state = value or DEFAULT_ISSUE_STATE


def _apply_labels(issue: ExchangeIssue, value: str) -> None:
    issue.labels = split_labels(value)


def _apply_dependencies(issue: ExchangeIssue, value: str) -> None:
    issue.dependencies = split_dependencies(value)


COLUMNS: dict[str, ColumnAccessor] = {
    "id": _int_column("id"),
    "title": _text_column("title"),
    "state": ColumnAccessor(lambda issue: issue.state, _apply_state),
    "priority": _text_column("priority"),
    "labels": ColumnAccessor(lambda issue: LIST_SEPARATOR.join(issue.labels), _apply_labels),
    "assignee": _text_column("assignee"),
    "milestone": _text_column("milestone"),
    "created_at": _timestamp_column("created_at"),
    "updated_at": _timestamp_column("updated_at"),
    "body": _text_column("body"),
    "estimated_hours": _int_column("estimated_hours"),
    "story_points": _int_column("story_points"),
    "epic": _text_column("epic"),
    "dependencies": ColumnAccessor(
        lambda issue: LIST_SEPARATOR.join(str(dependency) for dependency in issue.dependencies),
        _apply_dependencies,
    ),
    "acceptance_criteria": _text_column("acceptance_criteria"),
}


def render_column(issue: ExchangeIssue, column: str) -> str:
    """Render one cell of an issue. Unknown columns render empty."""
    accessor = COLUMNS.get(column)
    return accessor.render(issue) if accessor else ""
