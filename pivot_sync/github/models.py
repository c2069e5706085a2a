"""Pydantic models for issue payloads exchanged with the remote issue tracker.

Only the fields the synchronization layer consumes are modelled; everything
else in the REST payloads is ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RemoteLabel(BaseModel):
    """A label attached to a remote issue."""

    model_config = ConfigDict(extra="ignore")

    name: str


class RemoteUser(BaseModel):
    """A user assigned to a remote issue."""

    model_config = ConfigDict(extra="ignore")

    login: str


class RemoteIssue(BaseModel):
    """An issue as returned by the remote issue tracker."""

    model_config = ConfigDict(extra="ignore")

    id: int
    number: int
    title: str
    body: str | None = None
    state: str = "open"
    labels: list[RemoteLabel] = Field(default_factory=list)
    assignees: list[RemoteUser] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None

    @field_validator("labels", mode="before")
    @classmethod
    def label_names(cls, value: Any) -> Any:
        """Accept labels given either as objects or as bare names."""
        if value is None:
            return []
        return [{"name": label} if isinstance(label, str) else label for label in value]

    @field_validator("assignees", mode="before")
    @classmethod
    def empty_assignees(cls, value: Any) -> Any:
        """Treat a null assignee list as empty."""
        return [] if value is None else value


class CreateIssueRequest(BaseModel):
    """Fields sent to the remote issue tracker when creating an issue."""

    title: str = Field(min_length=1)
    body: str | None = None
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)


class CreatedIssue(BaseModel):
    """The part of a create response the bulk importer keeps."""

    model_config = ConfigDict(extra="ignore")

    id: int
    number: int
    html_url: str | None = None
