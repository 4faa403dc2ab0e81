"""Shared plumbing for the release workflows.

``ReleaseEnvironment`` bundles everything a workflow touches (checkout,
config, HTTP transport, console, credential location, clock) so tests
can swap each piece. ``release_session`` scopes a workflow run: it moves
into the repository and puts the working directory and the checked-out
branch back on every exit path.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from psr.core.config import ReleaseConfig
from psr.core.result import Err, Ok, Result
from psr.git.repository import Repository
from psr.output.console import ConsoleProtocol, Style
from psr.platform.http import HttpClient
from psr.services.release.context import resolve_context
from psr.services.release.credential import load_credential
from psr.services.release.errors import FlowError, VersionError, from_git
from psr.services.release.github import GitHubClient
from psr.services.release.version import ModuleVersion, version_from_tag


@dataclass(frozen=True, slots=True)
class ReleaseEnvironment:
    repo: Repository
    config: ReleaseConfig
    http: HttpClient
    console: ConsoleProtocol
    credential_path: Path
    today: Callable[[], date] = field(default=date.today)

    @property
    def dev_branch(self) -> str:
        return self.config.branches.dev

    @property
    def stable_branch(self) -> str:
        return self.config.branches.stable


@contextmanager
def release_session(env: ReleaseEnvironment) -> Iterator[None]:
    """Run a workflow from the repository root, restoring location and branch."""
    original_dir = Path.cwd()
    original_branch = env.repo.current_branch()
    os.chdir(env.repo.path)
    try:
        yield
    finally:
        if original_branch is not None and env.repo.current_branch() != original_branch:
            restored = env.repo.switch_branch(original_branch, skip_pull=True)
            if isinstance(restored, Err):
                env.console.warning(
                    f"could not restore branch {original_branch}: {from_git(restored.error).message}"
                )
        os.chdir(original_dir)


def open_client(env: ReleaseEnvironment) -> Result[GitHubClient, FlowError]:
    """Resolve the repository context and load the credential.

    Both checks run before any workflow stage touches local or remote state.
    """
    context = resolve_context(repo=env.repo, project=env.config.project)
    if isinstance(context, Err):
        return context
    env.console.print(f"project: {context.value.web_url}", Style.DIM)

    credential = load_credential(path=env.credential_path)
    if isinstance(credential, Err):
        return credential

    return Ok(
        GitHubClient(
            context=context.value,
            credential=credential.value,
            http=env.http,
            console=env.console,
        )
    )


def published_version_from_releases(
    client: GitHubClient,
) -> Result[ModuleVersion | None, FlowError]:
    """Version of the latest published release, None if nothing is published."""
    latest = client.latest_release()
    if isinstance(latest, Err):
        return latest
    if latest.value is None:
        return Ok(None)

    tag = latest.value.tag_name
    parsed = version_from_tag(tag)
    if parsed is None:
        return Err(
            VersionError(
                version=tag,
                published=tag,
                detail="latest release tag is not a four-component version",
            )
        )
    return Ok(parsed)
