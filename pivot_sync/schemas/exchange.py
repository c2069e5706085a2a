"""Pydantic schema for one row of the bulk exchange file."""

from datetime import datetime

from pydantic import BaseModel, Field

from pivot_sync.utils.constants import DEFAULT_ISSUE_STATE


class ExchangeIssue(BaseModel):
    """Pydantic model for an issue in the bulk exchange format.

    Absent values take the zero value of their type: 0 for numbers, None for
    timestamps, an empty list for labels and dependencies, an empty string for
    text.
    """

    id: int = 0
    title: str = ""
    state: str = DEFAULT_ISSUE_STATE
    priority: str = ""
    labels: list[str] = Field(default_factory=list)
    assignee: str = ""
    milestone: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    body: str = ""
    estimated_hours: int = 0
    story_points: int = 0
    epic: str = ""
    dependencies: list[int] = Field(default_factory=list)
    acceptance_criteria: str = ""
