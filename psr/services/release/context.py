from __future__ import annotations

import re
from shutil import which

from psr.core.config import ProjectConfig
from psr.core.result import Err, Ok, Result
from psr.git.repository import Repository
from psr.services.release.config import API_HOST_PREFIX, API_PATH_PREFIX
from psr.services.release.errors import ContextResolutionError
from psr.services.release.model import RepositoryContext

_SCP_LIKE_RE = re.compile(r"^[\w.-]+@(?P<host>[\w.-]+):(?P<path>.+)$")
_SSH_URL_RE = re.compile(r"^ssh://(?:[\w.-]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$")


def _as_https(url: str) -> str:
    m = _SCP_LIKE_RE.match(url) or _SSH_URL_RE.match(url)
    if m is not None:
        return f"https://{m.group('host')}/{m.group('path')}"
    return url


def context_from_remote_url(
    remote_url: str, *, project: ProjectConfig
) -> Result[RepositoryContext, ContextResolutionError]:
    """Derive the project identity from a remote URL.

    Only the ``.git`` suffix is stripped; the API URL is the web URL with
    ``https://{host}/`` replaced by ``https://api.{host}/repos/``.
    """
    url = _as_https(remote_url.strip())
    expected = f"https://{project.host}/{project.namespace}/"

    if not url:
        return Err(
            ContextResolutionError(
                reason="wrong_project",
                detail=f"no url configured for remote '{project.remote}'",
                remote_url=remote_url,
            )
        )

    if not url.lower().startswith(expected.lower()):
        return Err(
            ContextResolutionError(
                reason="wrong_project",
                detail=f"expected a remote under {expected}",
                remote_url=remote_url,
            )
        )

    web_url = url[: -len(".git")] if url.endswith(".git") else url
    name = web_url[len(expected) :]
    if not name or "/" in name:
        return Err(
            ContextResolutionError(
                reason="wrong_project",
                detail=f"expected {expected}<name>",
                remote_url=remote_url,
            )
        )

    if project.name is not None and name.lower() != project.name.lower():
        return Err(
            ContextResolutionError(
                reason="wrong_project",
                detail=f"expected {expected}{project.name}",
                remote_url=remote_url,
            )
        )

    host_prefix = web_url[: len(f"https://{project.host}/")]
    host = host_prefix[len("https://") : -1]
    api_base_url = (
        f"https://{API_HOST_PREFIX}{host}/{API_PATH_PREFIX}/" + web_url[len(host_prefix) :]
    )

    return Ok(RepositoryContext(name=name, web_url=web_url, api_base_url=api_base_url))


def resolve_context(
    *, repo: Repository, project: ProjectConfig
) -> Result[RepositoryContext, ContextResolutionError]:
    if which("git") is None:
        return Err(
            ContextResolutionError(
                reason="git_missing",
                detail="Install git and make sure it is on PATH",
            )
        )

    if not repo.exists():
        return Err(ContextResolutionError(reason="not_a_repo", detail=str(repo.path)))

    url = repo.remote_url(project.remote)
    if isinstance(url, Err):
        return Err(
            ContextResolutionError(
                reason="not_a_repo",
                detail=f"{repo.path}: {url.error.message}",
            )
        )

    return context_from_remote_url(url.value, project=project)
