"""Models for the persisted configuration and its canonical in-memory form."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pivot_sync.utils.constants import DEFAULT_BATCH_SIZE, DEFAULT_DATABASE_PATH


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class GlobalConfig(BaseModel):
    """Settings shared by every configured project."""

    model_config = ConfigDict(str_strip_whitespace=True)

    database: str = DEFAULT_DATABASE_PATH
    token: str | None = None
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    include_closed: bool = True

    @field_validator("database", mode="before")
    @classmethod
    def default_database(cls, value: Any) -> Any:
        """Fall back to the default store location when the value is absent or blank."""
        return _blank_to_none(value) or DEFAULT_DATABASE_PATH

    @field_validator("token", mode="before")
    @classmethod
    def blank_token(cls, value: Any) -> Any:
        """Treat a blank token as no token."""
        return _blank_to_none(value)

    @field_validator("batch_size", mode="before")
    @classmethod
    def default_batch_size(cls, value: Any) -> Any:
        """Fall back to the default batch size when the value is absent or zero."""
        if value is None or value == 0 or _blank_to_none(value) is None:
            return DEFAULT_BATCH_SIZE
        return value

    @field_validator("include_closed", mode="before")
    @classmethod
    def default_include_closed(cls, value: Any) -> Any:
        """Include closed issues unless explicitly disabled."""
        return True if value is None else value


class ProjectConfig(BaseModel):
    """A configured (owner, repository) pair with optional overrides."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    owner: str = ""
    repo: str = ""
    path: str | None = None
    token: str | None = None
    database: str | None = Field(
        default=None,
        validation_alias=AliasChoices("database_path", "database"),
        serialization_alias="database_path",
    )

    @field_validator("owner", "repo", mode="before")
    @classmethod
    def coerce_identity(cls, value: Any) -> Any:
        """Coerce null identity fields to blank strings so they can be reported as missing."""
        if value is None:
            return ""
        return str(value)

    @field_validator("path", "token", "database", mode="before")
    @classmethod
    def blank_override(cls, value: Any) -> Any:
        """Treat blank overrides as unset."""
        return _blank_to_none(value)

    @property
    def full_name(self) -> str:
        """Return the project identity in 'owner/repo' form."""
        return f"{self.owner}/{self.repo}"

    def effective_token(self, global_config: GlobalConfig) -> str | None:
        """Return the project credential, falling back to the global default."""
        return self.token or global_config.token

    def effective_database(self, global_config: GlobalConfig) -> str:
        """Return the project store location, falling back to the global default."""
        return self.database or global_config.database


class PivotConfig(BaseModel):
    """Canonical multi-project configuration.

    This is the only shape the rest of the application sees, whichever on-disk
    schema it was loaded from.
    """

    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    projects: list[ProjectConfig] = Field(default_factory=list)

    @field_validator("global_", mode="before")
    @classmethod
    def empty_global(cls, value: Any) -> Any:
        """Accept a `global:` section with no values."""
        return {} if value is None else value

    @field_validator("projects", mode="before")
    @classmethod
    def empty_projects(cls, value: Any) -> Any:
        """Accept a `projects:` section with no entries."""
        return [] if value is None else value

    def find_project(self, owner: str, repo: str) -> ProjectConfig | None:
        """Find a configured project by owner and repository name."""
        for project in self.projects:
            if project.owner == owner and project.repo == repo:
                return project
        return None


class LegacySyncConfig(BaseModel):
    """Sync options of the legacy single-project schema."""

    include_closed: bool = True
    batch_size: int = 0

    @field_validator("include_closed", mode="before")
    @classmethod
    def default_include_closed(cls, value: Any) -> Any:
        """Include closed issues unless explicitly disabled."""
        return True if value is None else value

    @field_validator("batch_size", mode="before")
    @classmethod
    def default_batch_size(cls, value: Any) -> Any:
        """Treat a missing batch size as zero so the canonical default applies."""
        return 0 if value is None else value


class LegacyConfig(BaseModel):
    """Flat single-project configuration schema."""

    model_config = ConfigDict(str_strip_whitespace=True)

    owner: str = ""
    repo: str = ""
    token: str | None = None
    database: str | None = None
    sync: LegacySyncConfig = Field(default_factory=LegacySyncConfig)

    @field_validator("owner", "repo", mode="before")
    @classmethod
    def coerce_identity(cls, value: Any) -> Any:
        """Coerce null identity fields to blank strings so they can be reported as missing."""
        if value is None:
            return ""
        return str(value)

    @field_validator("sync", mode="before")
    @classmethod
    def empty_sync(cls, value: Any) -> Any:
        """Accept a `sync:` section with no values."""
        return {} if value is None else value
