"""Loads the persisted configuration and resolves it into the canonical model.

Two on-disk schemas are recognized. The canonical schema has explicit `global`
and `projects` sections; the legacy schema is a flat single-project mapping
(owner, repo, token, database, sync). Resolution is an explicit two-pass
attempt: the canonical schema is tried first whenever the document declares
either canonical section, and the legacy schema second. Whichever schema
matched, callers always receive a `PivotConfig`.
"""

from pathlib import Path
from typing import Any

import structlog
from ruamel.yaml import YAMLError

from pivot_sync.configuration.exceptions import ConfigNotFoundError, ConfigParseError, InvalidConfigError
from pivot_sync.configuration.models import GlobalConfig, LegacyConfig, PivotConfig, ProjectConfig
from pivot_sync.store.exceptions import DuplicateProjectError
from pivot_sync.utils.constants import CONFIG_FILENAMES
from pivot_sync.utils.yaml import dump_yaml_to_file, load_yaml_text

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

CANONICAL_SECTIONS = ("global", "projects")


def find_config_file(working_dir: Path) -> Path:
    """Return the first recognized configuration file in the working directory.

    Raises:
        ConfigNotFoundError: If none of the recognized filenames exist.
    """
    for filename in CONFIG_FILENAMES:
        candidate = working_dir / filename
        if candidate.is_file():
            return candidate
    raise ConfigNotFoundError(working_dir, CONFIG_FILENAMES)


def load_config(working_dir: Path | None = None) -> PivotConfig:
    """Read the configuration file from the working directory and resolve it."""
    working_dir = working_dir or Path.cwd()
    config_path = find_config_file(working_dir)
    content = config_path.read_text(encoding="utf-8")
    config = resolve_config(content, working_dir)
    logger.info("Loaded configuration", path=str(config_path), project_count=len(config.projects))
    return config


def load_config_file(config_path: Path, working_dir: Path | None = None) -> PivotConfig:
    """Read and resolve a configuration from an explicit file path."""
    content = config_path.read_text(encoding="utf-8")
    return resolve_config(content, working_dir or Path.cwd())


def _require_mapping(document: Any) -> dict[str, Any]:
    if not isinstance(document, dict):
        raise TypeError(f"expected a mapping at the top level, got {type(document).__name__}")
    return document


def _parse_canonical(content: str) -> PivotConfig | None:
    """Parse the content as the canonical schema.

    Returns None when the document does not declare a canonical section, so the
    legacy schema can be attempted.
    """
    document = load_yaml_text(content)
    if document is None:
        return None
    document = _require_mapping(document)
    if not any(section in document for section in CANONICAL_SECTIONS):
        return None
    return PivotConfig.model_validate(document)


def _parse_legacy(content: str) -> LegacyConfig:
    """Parse the content as the flat legacy schema."""
    document = load_yaml_text(content)
    if document is None:
        document = {}
    document = _require_mapping(document)
    declared = [section for section in CANONICAL_SECTIONS if section in document]
    if declared:
        raise ValueError(f"document declares multi-project sections: {', '.join(declared)}")
    return LegacyConfig.model_validate(document)


def _finalize_canonical(config: PivotConfig, working_dir: Path) -> PivotConfig:
    seen: set[tuple[str, str]] = set()
    for index, project in enumerate(config.projects):
        missing = [name for name in ("owner", "repo") if not getattr(project, name)]
        if missing:
            raise InvalidConfigError(
                f"Invalid configuration: project #{index + 1} is missing required fields: {', '.join(missing)}",
                missing,
            )
        identity = (project.owner, project.repo)
        if identity in seen:
            raise InvalidConfigError(f"Invalid configuration: project {project.full_name} is configured more than once")
        seen.add(identity)
        if project.path is None:
            project.path = str(working_dir)
    return config


def _convert_legacy(legacy: LegacyConfig, working_dir: Path) -> PivotConfig:
    missing = [name for name in ("owner", "repo") if not getattr(legacy, name)]
    if missing:
        raise InvalidConfigError(f"Invalid configuration: missing required fields: {', '.join(missing)}", missing)
    return PivotConfig(
        global_=GlobalConfig(
            database=legacy.database,
            token=legacy.token,
            batch_size=legacy.sync.batch_size,
            include_closed=legacy.sync.include_closed,
        ),
        projects=[ProjectConfig(owner=legacy.owner, repo=legacy.repo, path=str(working_dir))],
    )


def resolve_config(content: str, working_dir: Path) -> PivotConfig:
    """Resolve configuration text into the canonical multi-project model.

    This is a pure transform: it performs no I/O and yields the same result for
    the same inputs.

    Args:
        content: Raw text of the configuration file.
        working_dir: Directory assigned to projects that do not name a path.

    Raises:
        ConfigParseError: If the content matches neither schema.
        InvalidConfigError: If the content parses but lacks owner or repository.
    """
    canonical_error: Exception
    try:
        canonical = _parse_canonical(content)
    except (YAMLError, ValueError, TypeError) as exc:
        canonical_error = exc
    else:
        if canonical is not None:
            return _finalize_canonical(canonical, working_dir)
        canonical_error = ValueError("document does not declare a 'global' or 'projects' section")

    try:
        legacy = _parse_legacy(content)
    except (YAMLError, ValueError, TypeError) as exc:
        raise ConfigParseError(canonical_error, exc) from exc
    return _convert_legacy(legacy, working_dir)


def config_to_document(config: PivotConfig) -> dict[str, Any]:
    """Render the canonical configuration as a plain mapping in the nested on-disk schema."""
    return {
        "global": config.global_.model_dump(exclude_none=True),
        "projects": [project.model_dump(by_alias=True, exclude_none=True) for project in config.projects],
    }


def save_config(config: PivotConfig, path: Path) -> None:
    """Write the configuration to disk in the canonical nested schema."""
    dump_yaml_to_file(config_to_document(config), path)
    path.chmod(0o600)
    logger.info("Saved configuration", path=str(path), project_count=len(config.projects))


def add_project_to_config(config: PivotConfig, project: ProjectConfig) -> PivotConfig:
    """Append a project to the configuration.

    Raises:
        DuplicateProjectError: If the owner and repository pair is already configured.
    """
    if config.find_project(project.owner, project.repo) is not None:
        raise DuplicateProjectError(project.owner, project.repo)
    config.projects.append(project)
    return config


def merge_configs(current: PivotConfig, imported: PivotConfig) -> PivotConfig:
    """Merge an imported configuration into the current one.

    Non-blank imported global values win. Imported projects replace configured
    projects with the same owner and repository and are appended otherwise.
    """
    merged = current.model_copy(deep=True)
    imported_global = imported.global_.model_dump(exclude_unset=True, exclude_none=True)
    if imported_global:
        merged.global_ = merged.global_.model_copy(update=imported_global)

    for imported_project in imported.projects:
        for index, existing in enumerate(merged.projects):
            if existing.owner == imported_project.owner and existing.repo == imported_project.repo:
                merged.projects[index] = imported_project.model_copy()
                break
        else:
            merged.projects.append(imported_project.model_copy())
    return merged


def resolve_database_path(database: str) -> Path:
    """Resolve a store location, expanding a leading '~' to the home directory."""
    return Path(database).expanduser()


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract owner and repository name from a GitHub HTTPS or SSH remote URL."""
    for prefix in ("https://github.com/", "git@github.com:"):
        if url.startswith(prefix):
            path = url.removeprefix(prefix)
            break
    else:
        raise ValueError(f"unsupported git URL format: {url}")

    path = path.removesuffix(".git")
    parts = path.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"invalid GitHub URL format: {url}")
    return parts[0], parts[1]


def _find_git_directory(start_dir: Path) -> Path:
    for directory in (start_dir, *start_dir.parents):
        git_dir = directory / ".git"
        if git_dir.is_dir():
            return git_dir
    raise FileNotFoundError(f".git directory not found above {start_dir}")


def detect_project_from_git(start_dir: Path | None = None) -> ProjectConfig:
    """Detect the project from the `origin` remote of the enclosing git repository."""
    git_dir = _find_git_directory((start_dir or Path.cwd()).resolve())
    in_origin = False
    for raw_line in (git_dir / "config").read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("["):
            in_origin = line.startswith('[remote "origin"]')
            continue
        if in_origin and line.startswith("url"):
            key, _, value = line.partition("=")
            if key.strip() == "url":
                owner, repo = parse_github_url(value.strip())
                return ProjectConfig(owner=owner, repo=repo, path=str(git_dir.parent))
    raise ValueError(f"remote origin URL not found in {git_dir / 'config'}")
