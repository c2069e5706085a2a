"""Project registry operations on the local issue store."""

import sqlite3

import structlog

from pivot_sync.configuration.models import ProjectConfig
from pivot_sync.store.exceptions import DatabaseError, DuplicateProjectError, ProjectNotFoundError
from pivot_sync.store.models import StoredProject

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_PROJECT_COLUMNS = "id, owner, repo, path, token, database_path, created_at, updated_at"


def find_project(conn: sqlite3.Connection, owner: str, repo: str) -> StoredProject | None:
    """Find a registered project by owner and repository name."""
    row = conn.execute(f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE owner = ? AND repo = ?", (owner, repo)).fetchone()
    return StoredProject(**row) if row else None


def find_project_by_path(conn: sqlite3.Connection, path: str) -> StoredProject | None:
    """Find a registered project by its local filesystem path."""
    row = conn.execute(f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE path = ?", (path,)).fetchone()
    return StoredProject(**row) if row else None


def get_project_id(conn: sqlite3.Connection, owner: str, repo: str) -> int:
    """Return the store identifier of a registered project.

    Raises:
        ProjectNotFoundError: If the project is not registered.
    """
    project = find_project(conn, owner, repo)
    if project is None:
        raise ProjectNotFoundError(f"Project {owner}/{repo} is not registered in the local store")
    return project.id


def list_projects(conn: sqlite3.Connection) -> list[StoredProject]:
    """Return all registered projects ordered by owner and repository."""
    rows = conn.execute(f"SELECT {_PROJECT_COLUMNS} FROM projects ORDER BY owner, repo").fetchall()
    return [StoredProject(**row) for row in rows]


def _insert_project(conn: sqlite3.Connection, project: ProjectConfig) -> int:
    cursor = conn.execute(
        "INSERT INTO projects (owner, repo, path, token, database_path) VALUES (?, ?, ?, ?, ?)",
        (project.owner, project.repo, project.path, project.token, project.database),
    )
    if cursor.lastrowid is None:
        raise DatabaseError(f"Insert of project {project.full_name} returned no row id")
    return cursor.lastrowid


def add_project(conn: sqlite3.Connection, project: ProjectConfig) -> int:
    """Register a new project and return its identifier.

    Raises:
        DuplicateProjectError: If the owner and repository pair is already registered.
        DatabaseError: If the insert fails.
    """
    if find_project(conn, project.owner, project.repo) is not None:
        raise DuplicateProjectError(project.owner, project.repo)
    try:
        project_id = _insert_project(conn, project)
    except sqlite3.IntegrityError as exc:
        raise DuplicateProjectError(project.owner, project.repo) from exc
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to add project {project.full_name}: {exc}") from exc
    logger.info("Registered project", project=project.full_name, project_id=project_id)
    return project_id


def ensure_project(conn: sqlite3.Connection, project: ProjectConfig) -> int:
    """Return the identifier of a project, registering it first if it is unknown.

    An already registered project is returned as-is; its attributes are not touched.
    """
    existing = find_project(conn, project.owner, project.repo)
    if existing is not None:
        return existing.id
    return add_project(conn, project)


def update_project(conn: sqlite3.Connection, project: ProjectConfig) -> None:
    """Overwrite the path, credential, and store override of a registered project.

    Raises:
        ProjectNotFoundError: If the project is not registered.
    """
    try:
        cursor = conn.execute(
            """
            UPDATE projects
            SET path = ?, token = ?, database_path = ?, updated_at = CURRENT_TIMESTAMP
            WHERE owner = ? AND repo = ?
            """,
            (project.path, project.token, project.database, project.owner, project.repo),
        )
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to update project {project.full_name}: {exc}") from exc
    if cursor.rowcount == 0:
        raise ProjectNotFoundError(f"Project {project.full_name} is not registered in the local store")
    logger.info("Updated project", project=project.full_name)


def delete_project(conn: sqlite3.Connection, owner: str, repo: str) -> None:
    """Delete a registered project together with all of its cached issues."""
    try:
        cursor = conn.execute("DELETE FROM projects WHERE owner = ? AND repo = ?", (owner, repo))
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to delete project {owner}/{repo}: {exc}") from exc
    if cursor.rowcount == 0:
        raise ProjectNotFoundError(f"Project {owner}/{repo} is not registered in the local store")
    logger.info("Deleted project", project=f"{owner}/{repo}")
