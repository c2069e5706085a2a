"""Orchestrates the synchronization of every configured project."""

import time
from pathlib import Path

import structlog

from pivot_sync.configuration.exceptions import InvalidConfigError
from pivot_sync.configuration.loader import resolve_database_path
from pivot_sync.configuration.models import PivotConfig, ProjectConfig
from pivot_sync.github.abc import RemoteIssueSource
from pivot_sync.store.connection import get_connection, store_lock
from pivot_sync.store.migration import initialize_store
from pivot_sync.synchronize.issues import sync_project
from pivot_sync.synchronize.results import ProjectSyncResult, SyncReport

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def select_projects(config: PivotConfig, project_filter: str | None = None) -> list[ProjectConfig]:
    """Return the projects a run covers, narrowed to one when a filter is given.

    Raises:
        InvalidConfigError: If nothing is configured, the filter is not in
            'owner/repo' form, or it names an unconfigured project.
    """
    if not config.projects:
        raise InvalidConfigError("No projects configured")
    if project_filter is None:
        return list(config.projects)

    owner, separator, repo = project_filter.partition("/")
    if not separator or not owner or not repo or "/" in repo:
        raise InvalidConfigError(f"Invalid project format '{project_filter}', expected owner/repo")
    project = config.find_project(owner, repo)
    if project is None:
        raise InvalidConfigError(f"Project {project_filter} not found in configuration")
    return [project]


def group_projects_by_store(config: PivotConfig, projects: list[ProjectConfig]) -> dict[Path, list[ProjectConfig]]:
    """Group projects by the store file they resolve to, keeping configuration order."""
    groups: dict[Path, list[ProjectConfig]] = {}
    for project in projects:
        db_path = resolve_database_path(project.effective_database(config.global_))
        groups.setdefault(db_path, []).append(project)
    return groups


def legacy_project_for(config: PivotConfig, db_path: Path) -> ProjectConfig:
    """Return the first configured project that lives in the given store."""
    for project in config.projects:
        if resolve_database_path(project.effective_database(config.global_)) == db_path:
            return project
    return config.projects[0]


def run_sync_workflow(config: PivotConfig, source: RemoteIssueSource, project_filter: str | None = None) -> SyncReport:
    """Run the sync workflow for the selected projects.

    Each store is locked, initialized and, when it is a single-project store,
    migrated before any of its projects is synchronized. Projects are
    synchronized in isolation and reported in configuration order.
    """
    projects = select_projects(config, project_filter)
    results: dict[tuple[str, str], ProjectSyncResult] = {}

    start_time = time.time()
    logger.info("Starting sync", project_count=len(projects))
    for db_path, store_projects in group_projects_by_store(config, projects).items():
        logger.info("Syncing store", database=str(db_path), projects=[project.full_name for project in store_projects])
        with store_lock(db_path), get_connection(db_path) as conn:
            initialize_store(conn, legacy_project_for(config, db_path))
            for project in store_projects:
                results[(project.owner, project.repo)] = sync_project(conn, config, project, source)

    report = SyncReport([results[(project.owner, project.repo)] for project in projects])
    logger.info(
        "Finished sync",
        succeeded=len(report.succeeded),
        failed=len(report.failed),
        fetched=report.total_fetched,
        upserted=report.total_upserted,
        duration=round(time.time() - start_time, 2),
    )
    return report
