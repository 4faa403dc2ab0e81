from __future__ import annotations

from psr.core.result import Err, Ok, Result
from psr.output.console import Style
from psr.services.release.artifacts import (
    manifest_release_notes,
    manifest_version,
    read_artifact,
)
from psr.services.release.config import (
    RELEASE_COMMIT_MESSAGE,
    RELEASE_COMMIT_TITLE,
    release_branch_for,
    release_tag_for,
)
from psr.services.release.errors import (
    ArtifactError,
    BranchNotFoundError,
    FlowError,
    NotMergeableError,
    VersionError,
    from_git,
)
from psr.services.release.github import GitHubClient
from psr.services.release.model import BranchKind, PullRequest, Release
from psr.services.release.session import ReleaseEnvironment, open_client, release_session
from psr.services.release.version import ModuleVersion, parse_version, require_version


def start_release(*, env: ReleaseEnvironment) -> Result[int, FlowError]:
    """Open (or reuse) the dev -> stable pull request once dev is green.

    The status check does not wait: anything but ``success`` fails with
    ``NotMergeableError`` and nothing is created.
    """
    with release_session(env):
        env.console.header(f"Release start: {env.dev_branch} -> {env.stable_branch}")

        client = open_client(env)
        if isinstance(client, Err):
            return client

        status = client.value.get_ref_status(env.dev_branch, wait_for_success=False)
        if isinstance(status, Err):
            return status
        if status.value != "success":
            return Err(NotMergeableError(ref=env.dev_branch, status=status.value))
        env.console.print(f"{env.dev_branch}: status is success", Style.DIM)

        pr = _ensure_release_pull_request(env=env, client=client.value)
        if isinstance(pr, Err):
            return pr

        env.console.success(
            f"pull request #{pr.value.number}: {env.dev_branch} -> {env.stable_branch}"
        )
        return Ok(pr.value.number)


def _ensure_release_pull_request(
    *, env: ReleaseEnvironment, client: GitHubClient
) -> Result[PullRequest, FlowError]:
    existing = client.find_pull_request(
        head=env.dev_branch,
        base=env.stable_branch,
        max_pages=env.config.release.max_pr_pages,
    )
    if isinstance(existing, Err):
        return existing
    if existing.value is not None:
        env.console.print(f"reusing open pull request #{existing.value.number}", Style.DIM)
        return Ok(existing.value)

    created = client.create_pull_request(
        title=RELEASE_COMMIT_TITLE,
        body=RELEASE_COMMIT_MESSAGE,
        head=env.dev_branch,
        base=env.stable_branch,
    )
    if isinstance(created, Err):
        return created
    return Ok(created.value)


def complete_release(
    *,
    env: ReleaseEnvironment,
    pr_number: int,
    kind: BranchKind,
    version: str,
) -> Result[Release, FlowError]:
    """Merge the release pull request, publish the release and drop the branch.

    Manifest notes and version are read from the development line before
    anything is merged. An existing release for the tag is reused.
    """
    with release_session(env):
        return _complete(env=env, pr_number=pr_number, kind=kind, version=version)


def _complete(
    *,
    env: ReleaseEnvironment,
    pr_number: int,
    kind: BranchKind,
    version: str,
) -> Result[Release, FlowError]:
    console = env.console
    console.header(f"Release complete #{pr_number}")

    target = require_version(version)
    if isinstance(target, Err):
        return target

    # The manifest must match dev as merged on the host.
    on_dev = env.repo.switch_branch(env.dev_branch, skip_pull=True)
    if isinstance(on_dev, Err):
        return Err(from_git(on_dev.error))
    pulled = env.repo.pull_ff()
    if isinstance(pulled, Err):
        return Err(from_git(pulled.error))

    client = open_client(env)
    if isinstance(client, Err):
        return client

    manifest = _read_manifest(env=env, expected=target.value)
    if isinstance(manifest, Err):
        return manifest
    notes = manifest.value

    branch = release_branch_for(kind=kind, version=str(target.value), dev_branch=env.dev_branch)
    if not env.repo.branch_exists(branch.name):
        return Err(BranchNotFoundError(branch=branch.name))

    pr = client.value.get_pull_request(pr_number)
    if isinstance(pr, Err):
        return pr

    if pr.value.merged:
        console.print(f"#{pr_number} already merged", Style.DIM)
    else:
        merged = client.value.approve_pull_request(
            pr_number,
            commit_title=RELEASE_COMMIT_TITLE,
            commit_message=RELEASE_COMMIT_MESSAGE,
            merge_method=env.config.release.merge_method,
        )
        if isinstance(merged, Err):
            return merged
        console.print(f"merged #{pr_number}: {pr.value.head_ref} -> {pr.value.base_ref}", Style.DIM)

    tag = release_tag_for(version=str(target.value), suffix=env.config.release.tag_suffix)
    release = _ensure_release(env=env, client=client.value, tag=tag, notes=notes)
    if isinstance(release, Err):
        return release

    deleted = env.repo.delete_branch(branch.name, dev_branch=env.dev_branch)
    if isinstance(deleted, Err):
        return Err(from_git(deleted.error))
    for warning in deleted.value.warnings:
        console.warning(warning)

    console.success(f"released {tag}: {release.value.html_url or release.value.name}")
    return Ok(release.value)


def _read_manifest(*, env: ReleaseEnvironment, expected: ModuleVersion) -> Result[str, FlowError]:
    """Release notes from the manifest, after checking its version field."""
    path = env.repo.path / env.config.manifest_path()
    artifact = read_artifact(path)
    if isinstance(artifact, Err):
        return artifact
    text = artifact.value.text

    raw_version = manifest_version(text)
    if raw_version is None:
        return Err(ArtifactError(path=path, detail="no ModuleVersion = '...' field"))
    found = parse_version(raw_version)
    if found is None:
        return Err(
            VersionError(
                version=raw_version,
                published=None,
                detail=f"manifest {path.name} does not hold a four-component version",
            )
        )
    if found != expected:
        return Err(
            VersionError(
                version=str(expected),
                published=None,
                detail=f"manifest {path.name} is at {found}; was the dev-merge completed?",
            )
        )

    notes = manifest_release_notes(text)
    if notes is None:
        return Err(ArtifactError(path=path, detail="no ReleaseNotes = '...' field"))
    return Ok(notes)


def _ensure_release(
    *, env: ReleaseEnvironment, client: GitHubClient, tag: str, notes: str
) -> Result[Release, FlowError]:
    existing = client.get_release_by_tag(tag)
    if isinstance(existing, Err):
        return existing
    if existing.value is not None:
        env.console.print(f"release {tag} already exists", Style.DIM)
        return Ok(existing.value)

    created = client.create_release(
        tag_name=tag,
        title=tag,
        description=notes,
        draft=False,
        prerelease=False,
        target=env.stable_branch,
    )
    if isinstance(created, Err):
        return created
    return Ok(created.value)
