"""Pydantic models for rows of the local issue store."""

from pydantic import BaseModel, Field

from pivot_sync.utils.constants import LIST_SEPARATOR


class StoredProject(BaseModel):
    """A row of the projects table."""

    id: int
    owner: str
    repo: str
    path: str | None = None
    token: str | None = None
    database_path: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class StoredIssue(BaseModel):
    """A cached issue as held in the issues table."""

    github_id: int
    project_id: int | None = None
    number: int = 0
    title: str = Field(min_length=1)
    body: str = ""
    state: str = "open"
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None
    local_modified_at: str | None = None
    sync_hash: str | None = None


def join_names(names: list[str]) -> str:
    """Render an ordered name sequence as stored delimited text."""
    return LIST_SEPARATOR.join(names)


def split_names(value: str | None) -> list[str]:
    """Parse stored delimited text back into an ordered name sequence."""
    if not value:
        return []
    return value.split(LIST_SEPARATOR)
