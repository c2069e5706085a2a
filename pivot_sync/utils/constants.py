"""Shared constants used across the application."""

# Configuration Constants
# -----------------------

CONFIG_FILENAMES = ("config.yml", "config.yaml")
"""Recognized configuration filenames, in lookup priority order."""

DEFAULT_DATABASE_PATH = "~/.pivot/pivot.db"
"""Default location of the local issue store when the configuration names none."""

DEFAULT_BATCH_SIZE = 100
"""Default page size requested from the remote issue tracker."""

MAX_PAGE_SIZE = 100
"""Largest page size the GitHub REST API honors for list endpoints."""

DEFAULT_GITHUB_API_URL = "https://api.github.com"
"""Default GitHub REST API base URL."""

DEFAULT_REQUEST_TIMEOUT = 30.0
"""Default timeout in seconds applied to every remote tracker call."""

# Local Store Constants
# ---------------------

LEGACY_SENTINEL_OWNER = "legacy"
LEGACY_SENTINEL_REPO = "default"
"""Project assigned to migrated issues when no legacy project can be resolved."""

LIST_SEPARATOR = ","
"""Separator used when storing label and assignee sequences as text."""

# Bulk Exchange Constants
# -----------------------

DEFAULT_EXCHANGE_COLUMNS = (
    "id",
    "title",
    "state",
    "priority",
    "labels",
    "assignee",
    "milestone",
    "created_at",
    "updated_at",
    "body",
    "estimated_hours",
    "story_points",
    "epic",
    "dependencies",
    "acceptance_criteria",
)
"""Canonical column order of the bulk exchange file."""

REQUIRED_EXCHANGE_COLUMN = "title"
"""The only column every bulk exchange file must carry."""

DEFAULT_ISSUE_STATE = "open"
"""State assigned to exchange rows that leave the state column blank."""
