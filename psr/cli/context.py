from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from psr.core.config import CONFIG_FILE_NAME, ReleaseConfig, load_config_or_default
from psr.core.errors import ErrorCode
from psr.core.result import Err
from psr.git.repository import Repository
from psr.output.console import ConsoleProtocol, RichConsole
from psr.platform.http import RealHttpClient
from psr.services.release.credential import CREDENTIAL_ENV_VAR, default_credential_path
from psr.services.release.session import ReleaseEnvironment

REPO_ROOT_ENV_VAR = "PSR_REPO_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    config: ReleaseConfig
    console: ConsoleProtocol
    env: ReleaseEnvironment


def _repo_root() -> Path:
    override = os.environ.get(REPO_ROOT_ENV_VAR)
    if override:
        return Path(override)
    return Path.cwd()


def resolve_credential_path(config: ReleaseConfig, repo_root: Path) -> Path:
    """Env override, then ``[release] credential_path``, then the user config dir."""
    if os.environ.get(CREDENTIAL_ENV_VAR):
        return default_credential_path()
    if config.release.credential_path:
        configured = Path(config.release.credential_path).expanduser()
        return configured if configured.is_absolute() else repo_root / configured
    return default_credential_path()


def build_context() -> CLIContext:
    root = _repo_root()
    console = RichConsole()

    config_result = load_config_or_default(root / CONFIG_FILE_NAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    config = config_result.value

    repo = Repository(root, remote=config.project.remote, console=console)
    env = ReleaseEnvironment(
        repo=repo,
        config=config,
        http=RealHttpClient(),
        console=console,
        credential_path=resolve_credential_path(config, root),
    )
    return CLIContext(repo_root=root, config=config, console=console, env=env)
