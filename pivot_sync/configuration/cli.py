"""Defines the Command Line Interface (CLI) using Typer."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import structlog
import typer
from dotenv import load_dotenv
from typer import Argument, Option
from typing_extensions import Annotated

from pivot_sync.configuration.env import settings
from pivot_sync.configuration.exceptions import ConfigNotFoundError, ConfigParseError, InvalidConfigError
from pivot_sync.configuration.loader import (
    add_project_to_config,
    config_to_document,
    detect_project_from_git,
    find_config_file,
    load_config,
    load_config_file,
    merge_configs,
    resolve_database_path,
    save_config,
)
from pivot_sync.configuration.models import PivotConfig, ProjectConfig
from pivot_sync.exchange.bulk import export_store_to_csv, import_csv_to_remote, import_csv_to_store
from pivot_sync.exchange.codec import validate_csv
from pivot_sync.exchange.exceptions import CSVFormatError, RowParseError
from pivot_sync.github.adapter import GitHubKitIssueSource
from pivot_sync.github.exceptions import CredentialError, RemoteError
from pivot_sync.store.connection import get_connection, store_lock
from pivot_sync.store.exceptions import DatabaseError, DuplicateProjectError, ProjectNotFoundError
from pivot_sync.store.migration import initialize_store
from pivot_sync.store.projects import ensure_project, get_project_id
from pivot_sync.synchronize.driver import group_projects_by_store, legacy_project_for, run_sync_workflow, select_projects
from pivot_sync.utils.constants import CONFIG_FILENAMES
from pivot_sync.utils.yaml import dump_yaml_to_stream

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False, help="Sync GitHub issues into a local SQLite store.")
project_app = typer.Typer(help="Project registry commands")
config_app = typer.Typer(help="Configuration file commands")
csv_app = typer.Typer(help="Bulk CSV exchange commands")
typer_app.add_typer(project_app, name="project")
typer_app.add_typer(config_app, name="config")
typer_app.add_typer(csv_app, name="csv")

CLI_ERRORS = (
    ConfigNotFoundError,
    ConfigParseError,
    InvalidConfigError,
    RemoteError,
    CSVFormatError,
    RowParseError,
    DatabaseError,
    DuplicateProjectError,
    ProjectNotFoundError,
)


def configure_logging(debug: bool) -> None:
    """Route structlog through the standard library logger at INFO, or DEBUG when requested."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def fail(error: Exception) -> NoReturn:
    """Report an error to the user and exit with a non-zero status."""
    typer.echo(f"Error: {error}", err=True)
    sys.exit(1)


@typer_app.callback()
def main_callback(
    ctx: typer.Context,
    working_dir: Annotated[
        Path, Option("--dir", envvar="PIVOT_DIR", help="Directory holding config.yml.", file_okay=False, resolve_path=True)
    ] = Path("."),
    debug: Annotated[bool, Option(envvar="DEBUG", help="Enable debug logging.")] = False,
) -> None:
    """Set the working directory and logging for the current context."""
    configure_logging(debug or settings.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj["working_dir"] = working_dir


def _load(ctx: typer.Context) -> PivotConfig:
    try:
        return load_config(ctx.obj["working_dir"])
    except CLI_ERRORS as exc:
        fail(exc)


def _select_project(config: PivotConfig, project_filter: str | None) -> ProjectConfig:
    """Return the filtered project, or the first configured project when no filter is given."""
    try:
        return select_projects(config, project_filter)[0]
    except InvalidConfigError as exc:
        fail(exc)


def _config_path(working_dir: Path) -> Path:
    try:
        return find_config_file(working_dir)
    except ConfigNotFoundError:
        return working_dir / CONFIG_FILENAMES[0]


def _source() -> GitHubKitIssueSource:
    return GitHubKitIssueSource(settings.GITHUB_API_URL, settings.GITHUB_TIMEOUT)


@typer_app.command(name="sync")
def sync_cli(
    ctx: typer.Context,
    project: Annotated[str | None, Option(help="Only sync this project (owner/repo).")] = None,
) -> None:
    """Pull issues of every configured project into the local store."""
    config = _load(ctx)
    try:
        report = run_sync_workflow(config, _source(), project)
    except CLI_ERRORS as exc:
        fail(exc)

    for result in report.results:
        if result.succeeded:
            typer.echo(f"{result.project.full_name}: fetched {result.fetched}, stored {result.upserted}, errors {len(result.errors)}")
            for error in result.errors:
                typer.echo(f"  - {error}", err=True)
        else:
            typer.echo(f"{result.failure_message}", err=True)
    typer.echo(
        f"Synced {len(report.succeeded)} of {len(report.results)} project(s): "
        f"fetched {report.total_fetched}, stored {report.total_upserted}, errors {report.total_issue_errors}"
    )
    if report.failed:
        sys.exit(1)


@typer_app.command(name="migrate")
def migrate_cli(ctx: typer.Context) -> None:
    """Create or upgrade the schema of every configured local store."""
    config = _load(ctx)
    if not config.projects:
        fail(InvalidConfigError("No projects configured"))
    for db_path in group_projects_by_store(config, config.projects):
        try:
            with store_lock(db_path), get_connection(db_path) as conn:
                initialize_store(conn, legacy_project_for(config, db_path))
        except CLI_ERRORS as exc:
            fail(exc)
        typer.echo(f"Store at {db_path} is up to date")


@project_app.command(name="add")
def project_add_cli(
    ctx: typer.Context,
    repository: Annotated[str | None, Argument(help="Repository name (owner/repo). Detected from git when omitted.")] = None,
    path: Annotated[Path | None, Option(help="Local path of the project.")] = None,
    token: Annotated[str | None, Option(help="Project specific GitHub token.")] = None,
    database: Annotated[str | None, Option(help="Project specific store location.")] = None,
) -> None:
    """Add a project to the configuration and register it in its store."""
    working_dir: Path = ctx.obj["working_dir"]
    config_path = _config_path(working_dir)
    config = _load(ctx) if config_path.exists() else PivotConfig()

    try:
        if repository is None:
            project = detect_project_from_git(path or working_dir)
        else:
            owner, _, repo = repository.partition("/")
            if not owner or not repo:
                raise InvalidConfigError(f"Invalid project format '{repository}', expected owner/repo")
            project = ProjectConfig(owner=owner, repo=repo, path=str(path or working_dir))
    except (InvalidConfigError, ValueError, FileNotFoundError) as exc:
        fail(exc)
    project.token = token or project.token
    project.database = database or project.database

    try:
        add_project_to_config(config, project)
        db_path = resolve_database_path(project.effective_database(config.global_))
        with store_lock(db_path), get_connection(db_path) as conn:
            initialize_store(conn, legacy_project_for(config, db_path))
            ensure_project(conn, project)
    except CLI_ERRORS as exc:
        fail(exc)
    save_config(config, config_path)
    typer.echo(f"Added project {project.full_name}")


@config_app.command(name="show")
def config_show_cli(ctx: typer.Context) -> None:
    """Print the resolved configuration in the multi-project format, with tokens masked."""
    config = _load(ctx).model_copy(deep=True)
    if config.global_.token:
        config.global_.token = "***"
    for project in config.projects:
        if project.token:
            project.token = "***"
    dump_yaml_to_stream(config_to_document(config), sys.stdout)


@config_app.command(name="import")
def config_import_cli(
    ctx: typer.Context,
    source_path: Annotated[Path, Argument(exists=True, dir_okay=False, help="Configuration file to import.")],
) -> None:
    """Merge another configuration file into the current one."""
    working_dir: Path = ctx.obj["working_dir"]
    config_path = _config_path(working_dir)
    try:
        imported = load_config_file(source_path, working_dir)
        current = load_config(working_dir) if config_path.exists() else PivotConfig()
    except CLI_ERRORS as exc:
        fail(exc)
    merged = merge_configs(current, imported)
    save_config(merged, config_path)
    typer.echo(f"Imported {len(imported.projects)} project(s) into {config_path}")


@csv_app.command(name="validate")
def csv_validate_cli(
    csv_path: Annotated[Path, Argument(exists=True, dir_okay=False, help="CSV file to validate.")],
) -> None:
    """Check the structure of a CSV exchange file."""
    try:
        rows = validate_csv(csv_path)
    except CLI_ERRORS as exc:
        fail(exc)
    typer.echo(f"{csv_path} is valid ({rows} rows)")


@csv_app.command(name="import")
def csv_import_cli(
    ctx: typer.Context,
    csv_path: Annotated[Path, Argument(exists=True, dir_okay=False, help="CSV file to import.")],
    project: Annotated[str | None, Option(help="Target project (owner/repo). Defaults to the first configured project.")] = None,
    dry_run: Annotated[bool, Option(help="Parse the file without creating any issue.")] = False,
) -> None:
    """Create a GitHub issue for every row of a CSV exchange file."""
    config = _load(ctx)
    target = _select_project(config, project)
    try:
        result = import_csv_to_remote(csv_path, target.owner, target.repo, target.effective_token(config.global_) or "", _source(), dry_run)
    except CredentialError as exc:
        typer.echo(f"GitHub credential validation failed: {exc}", err=True)
        sys.exit(1)
    except CLI_ERRORS as exc:
        fail(exc)

    typer.echo(f"Total: {result.total}, created: {result.created}, skipped: {result.skipped}, errors: {len(result.errors)}")
    for error in result.errors:
        typer.echo(f"  - {error}", err=True)
    if result.errors:
        sys.exit(1)


@csv_app.command(name="import-local")
def csv_import_local_cli(
    ctx: typer.Context,
    csv_path: Annotated[Path, Argument(exists=True, dir_okay=False, help="CSV file to import.")],
    project: Annotated[str | None, Option(help="Target project (owner/repo). Defaults to the first configured project.")] = None,
) -> None:
    """Write every row of a CSV exchange file into the local store without contacting GitHub."""
    config = _load(ctx)
    target = _select_project(config, project)
    db_path = resolve_database_path(target.effective_database(config.global_))
    try:
        with store_lock(db_path), get_connection(db_path) as conn:
            initialize_store(conn, legacy_project_for(config, db_path))
            project_id = ensure_project(conn, target)
            result = import_csv_to_store(csv_path, conn, project_id)
    except CLI_ERRORS as exc:
        fail(exc)
    typer.echo(f"Total: {result.total}, stored: {result.created}, errors: {len(result.errors)}")
    for error in result.errors:
        typer.echo(f"  - {error}", err=True)


@csv_app.command(name="export")
def csv_export_cli(
    ctx: typer.Context,
    csv_path: Annotated[Path, Argument(dir_okay=False, help="CSV file to write.")],
    project: Annotated[str | None, Option(help="Project to export (owner/repo). Defaults to the first configured project.")] = None,
    fields: Annotated[str | None, Option(help="Comma-separated subset of columns to write.")] = None,
) -> None:
    """Export the cached issues of a project to a CSV exchange file."""
    config = _load(ctx)
    target = _select_project(config, project)
    db_path = resolve_database_path(target.effective_database(config.global_))
    columns = [field.strip() for field in fields.split(",") if field.strip()] if fields else None
    try:
        with store_lock(db_path), get_connection(db_path) as conn:
            initialize_store(conn, legacy_project_for(config, db_path))
            result = export_store_to_csv(conn, get_project_id(conn, target.owner, target.repo), csv_path, columns)
    except CLI_ERRORS as exc:
        fail(exc)
    typer.echo(f"Exported {result.total} issue(s) to {result.file_path}")


def main() -> None:
    """Entry point of the `pivot` console script."""
    typer_app()


if __name__ == "__main__":
    main()
