"""Typed configuration loading and access.

The release tool reads an optional ``psr.toml`` at the repository root.
Every key has a default, so a checkout of the expected project works with
no config file at all.

Example ``psr.toml``:

    [project]
    host = "github.com"
    namespace = "microsoft"
    name = "PowerStig"

    [branches]
    dev = "dev"
    stable = "master"

    [release]
    tag_suffix = "-PSGallery"
    merge_method = "merge"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_str_list, get_table

__all__ = [
    "ArtifactPathsConfig",
    "BranchesConfig",
    "CONFIG_FILE_NAME",
    "ConfigError",
    "ProjectConfig",
    "ReleaseConfig",
    "ReleaseOptionsConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "psr.toml"

# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

DEFAULT_HOST = "github.com"
DEFAULT_NAMESPACE = "microsoft"
DEFAULT_PROJECT = "PowerStig"
DEFAULT_REMOTE = "origin"

DEFAULT_DEV_BRANCH = "dev"
DEFAULT_STABLE_BRANCH = "master"

DEFAULT_TAG_SUFFIX = "-PSGallery"
DEFAULT_MERGE_METHOD = "merge"
DEFAULT_MAX_PR_PAGES = 10


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Identity of the project the tool is allowed to operate on."""

    host: str = DEFAULT_HOST
    namespace: str = DEFAULT_NAMESPACE
    name: str | None = DEFAULT_PROJECT
    remote: str = DEFAULT_REMOTE

    @property
    def module_name(self) -> str:
        return self.name or DEFAULT_PROJECT


@dataclass(frozen=True, slots=True)
class BranchesConfig:
    dev: str = DEFAULT_DEV_BRANCH
    stable: str = DEFAULT_STABLE_BRANCH


@dataclass(frozen=True, slots=True)
class ArtifactPathsConfig:
    """Artifact paths relative to the repository root.

    ``manifest`` defaults to ``<module>.psd1`` when left unset.
    """

    changelog: str = "CHANGELOG.md"
    manifest: str | None = None
    build_config: str = "appveyor.yml"
    readme: str = "README.md"
    file_hash_doc: str = "FILEHASH.md"
    file_hash_patterns: tuple[str, ...] = ("*.psd1", "*.psm1", "DSCResources/**/*.ps*1")


@dataclass(frozen=True, slots=True)
class ReleaseOptionsConfig:
    tag_suffix: str = DEFAULT_TAG_SUFFIX
    merge_method: str = DEFAULT_MERGE_METHOD
    max_pr_pages: int = DEFAULT_MAX_PR_PAGES
    credential_path: str | None = None
    # login -> display name; authors from before the repository migration
    # are not visible through the pull request API.
    contributor_allowlist: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    branches: BranchesConfig = field(default_factory=BranchesConfig)
    artifacts: ArtifactPathsConfig = field(default_factory=ArtifactPathsConfig)
    release: ReleaseOptionsConfig = field(default_factory=ReleaseOptionsConfig)

    def manifest_path(self) -> str:
        return self.artifacts.manifest or f"{self.project.module_name}.psd1"

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create ReleaseConfig from a mapping (parsed TOML)."""
        project: StrDict = get_table(data, "project") or {}
        branches: StrDict = get_table(data, "branches") or {}
        artifacts: StrDict = get_table(data, "artifacts") or {}
        release: StrDict = get_table(data, "release") or {}
        allowlist: StrDict = get_table(release, "contributor_allowlist") or {}

        defaults = ArtifactPathsConfig()
        patterns = get_str_list(artifacts, "file_hash_patterns")

        return cls(
            project=ProjectConfig(
                host=get_str(project, "host") or DEFAULT_HOST,
                namespace=get_str(project, "namespace") or DEFAULT_NAMESPACE,
                name=get_str(project, "name") or DEFAULT_PROJECT,
                remote=get_str(project, "remote") or DEFAULT_REMOTE,
            ),
            branches=BranchesConfig(
                dev=get_str(branches, "dev") or DEFAULT_DEV_BRANCH,
                stable=get_str(branches, "stable") or DEFAULT_STABLE_BRANCH,
            ),
            artifacts=ArtifactPathsConfig(
                changelog=get_str(artifacts, "changelog") or defaults.changelog,
                manifest=get_str(artifacts, "manifest"),
                build_config=get_str(artifacts, "build_config") or defaults.build_config,
                readme=get_str(artifacts, "readme") or defaults.readme,
                file_hash_doc=get_str(artifacts, "file_hash_doc") or defaults.file_hash_doc,
                file_hash_patterns=(
                    tuple(patterns) if patterns is not None else defaults.file_hash_patterns
                ),
            ),
            release=ReleaseOptionsConfig(
                tag_suffix=get_str(release, "tag_suffix") or DEFAULT_TAG_SUFFIX,
                merge_method=get_str(release, "merge_method") or DEFAULT_MERGE_METHOD,
                max_pr_pages=get_int(release, "max_pr_pages") or DEFAULT_MAX_PR_PAGES,
                credential_path=get_str(release, "credential_path"),
                contributor_allowlist=tuple(
                    sorted(
                        (login, name)
                        for login, name in allowlist.items()
                        if isinstance(name, str)
                    )
                ),
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to psr.toml

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(ReleaseConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load config from file, or return defaults if the file doesn't exist.

    A file that exists but does not parse is still an error.
    """
    if not path.exists():
        return Ok(ReleaseConfig())
    return load_config(path)
