from __future__ import annotations

from psr.core.result import Err, Ok, Result
from psr.output.console import Style
from psr.services.release.artifacts import (
    ArtifactEdit,
    ArtifactPaths,
    newline_of,
    plan_release_artifacts,
    read_artifact,
    read_unreleased_notes,
    write_artifacts,
)
from psr.services.release.config import (
    DEV_MERGE_COMMIT_MESSAGE,
    DEV_MERGE_COMMIT_TITLE,
    PRE_MIGRATION_CONTRIBUTORS,
    release_branch_for,
)
from psr.services.release.contributors import (
    collect_contributors,
    render_contributor_markdown,
    update_readme_contributors,
)
from psr.services.release.errors import (
    FlowError,
    MissingReleaseNotesError,
    RemoteOperationError,
    from_git,
)
from psr.services.release.filehash import write_file_hash_markdown
from psr.services.release.github import GitHubClient
from psr.services.release.model import (
    BranchKind,
    CompletionErrorPolicy,
    PullRequest,
    ReleaseBranch,
)
from psr.services.release.session import (
    ReleaseEnvironment,
    open_client,
    published_version_from_releases,
    release_session,
)
from psr.services.release.version import (
    ModuleVersion,
    require_version,
    validate_version,
)


def start_dev_merge(
    *,
    env: ReleaseEnvironment,
    kind: BranchKind,
    version: str,
    include_release_notes: bool = True,
    published_version: str | None = None,
) -> Result[int, FlowError]:
    """Bump the module on a release branch and open a pull request into dev.

    ``published_version`` overrides the lookup of the latest published
    release. Returns the pull request number.
    """
    with release_session(env):
        return _start(
            env=env,
            kind=kind,
            version=version,
            include_release_notes=include_release_notes,
            published_version=published_version,
        )


def _start(
    *,
    env: ReleaseEnvironment,
    kind: BranchKind,
    version: str,
    include_release_notes: bool,
    published_version: str | None,
) -> Result[int, FlowError]:
    console = env.console
    console.header(f"Dev-merge {kind} {version}")

    client = open_client(env)
    if isinstance(client, Err):
        return client

    target = require_version(version)
    if isinstance(target, Err):
        return target

    branch = release_branch_for(kind=kind, version=str(target.value), dev_branch=env.dev_branch)

    if published_version is not None:
        published = require_version(published_version)
    else:
        published = published_version_from_releases(client.value)
    if isinstance(published, Err):
        return published

    valid = validate_version(target.value, published=published.value)
    if isinstance(valid, Err):
        return valid
    console.print(f"version {target.value} > published {published.value or 'none'}", Style.DIM)

    on_dev = env.repo.switch_branch(env.dev_branch, skip_pull=False)
    if isinstance(on_dev, Err):
        return Err(from_git(on_dev.error))

    paths = ArtifactPaths.from_config(repo_root=env.repo.path, config=env.config)
    notes: str | None = None
    if include_release_notes:
        read = read_unreleased_notes(paths.changelog)
        if isinstance(read, Err):
            return read
        if not read.value:
            return Err(MissingReleaseNotesError(changelog=paths.changelog))
        notes = read.value

    created = env.repo.create_release_branch(branch.name, dev_branch=env.dev_branch)
    if isinstance(created, Err):
        return Err(from_git(created.error))
    console.print(
        f"release branch {branch.name} {'created' if created.value else 'reused'}", Style.DIM
    )

    updated = _update_artifacts(
        env=env,
        client=client.value,
        paths=paths,
        version=target.value,
        notes=notes,
    )
    if isinstance(updated, Err):
        return updated

    committed = env.repo.commit_and_push(branch.name, f"Release {target.value}")
    if isinstance(committed, Err):
        return Err(from_git(committed.error))
    if not committed.value.committed:
        console.print("artifacts already up to date on the release branch", Style.DIM)

    pr = _ensure_pull_request(env=env, client=client.value, branch=branch, notes=notes)
    if isinstance(pr, Err):
        return pr

    back = env.repo.switch_branch(env.dev_branch, skip_pull=True)
    if isinstance(back, Err):
        return Err(from_git(back.error))

    console.success(f"pull request #{pr.value.number}: {branch.name} -> {env.dev_branch}")
    return Ok(pr.value.number)


def _update_artifacts(
    *,
    env: ReleaseEnvironment,
    client: GitHubClient,
    paths: ArtifactPaths,
    version: ModuleVersion,
    notes: str | None,
) -> Result[None, FlowError]:
    """Plan every artifact edit, then write them together.

    The contributor lookup is the only remote read here; it runs before any
    file is touched so a host failure leaves the working tree clean.
    """
    edits = plan_release_artifacts(
        paths=paths,
        version=version,
        release_notes=notes,
        released_on=env.today(),
    )
    if isinstance(edits, Err):
        return edits

    readme = _plan_contributors(env=env, client=client)
    if isinstance(readme, Err):
        return readme

    planned = list(edits.value)
    if readme.value is not None:
        planned.append(readme.value)
    written = write_artifacts(planned)
    if isinstance(written, Err):
        return written
    for path in written.value:
        env.console.print(f"updated {path.name}", Style.DIM)

    root = env.repo.path
    hashes = write_file_hash_markdown(
        root=root,
        patterns=env.config.artifacts.file_hash_patterns,
        out=root / env.config.artifacts.file_hash_doc,
    )
    if isinstance(hashes, Err):
        return hashes
    if hashes.value:
        env.console.print(f"updated {env.config.artifacts.file_hash_doc}", Style.DIM)
    return Ok(None)


def _plan_contributors(
    *, env: ReleaseEnvironment, client: GitHubClient
) -> Result[ArtifactEdit | None, FlowError]:
    readme_path = env.repo.path / env.config.artifacts.readme
    readme = read_artifact(readme_path)
    if isinstance(readme, Err):
        return readme

    allowlist = env.config.release.contributor_allowlist or PRE_MIGRATION_CONTRIBUTORS.get(
        client.context.name, ()
    )
    collected = collect_contributors(
        client=client,
        base=env.dev_branch,
        allowlist=allowlist,
        max_pages=env.config.release.max_pr_pages,
    )
    if isinstance(collected, Err):
        return collected
    if collected.value.truncated:
        env.console.warning(
            f"contributor list may be incomplete: stopped after "
            f"{env.config.release.max_pr_pages} pages of closed pull requests"
        )

    markdown = render_contributor_markdown(
        collected.value.records,
        host=env.config.project.host,
        newline=newline_of(readme.value.text),
    )
    updated = update_readme_contributors(readme.value.text, markdown)
    if updated is None:
        env.console.warning(f"{readme_path.name} has no '## Contributors' section; skipped")
        return Ok(None)
    return Ok(ArtifactEdit(original=readme.value, text=updated))


def _ensure_pull_request(
    *,
    env: ReleaseEnvironment,
    client: GitHubClient,
    branch: ReleaseBranch,
    notes: str | None,
) -> Result[PullRequest, FlowError]:
    existing = client.find_pull_request(
        head=branch.name,
        base=branch.base_branch,
        max_pages=env.config.release.max_pr_pages,
    )
    if isinstance(existing, Err):
        return existing
    if existing.value is not None:
        env.console.print(f"reusing open pull request #{existing.value.number}", Style.DIM)
        return Ok(existing.value)

    body = notes if notes else f"Version bump to {branch.name}"
    created = client.create_pull_request(
        title=f"Release {branch.name}",
        body=body,
        head=branch.name,
        base=branch.base_branch,
    )
    if isinstance(created, Err):
        return created
    return Ok(created.value)


def complete_dev_merge(
    *,
    env: ReleaseEnvironment,
    pr_number: int,
    on_error: CompletionErrorPolicy = "propagate",
) -> Result[PullRequest | None, FlowError]:
    """Merge a dev-merge pull request after review and CI.

    Remote failures during lookup or merge follow ``on_error``:
    ``"propagate"`` returns the error; ``"restore_only"`` only restores the
    working directory and branch, warns, and returns Ok(None).
    """
    with release_session(env):
        result = _complete(env=env, pr_number=pr_number)

    if isinstance(result, Err) and on_error == "restore_only":
        if isinstance(result.error, RemoteOperationError):
            env.console.warning(f"{result.error.message} (ignored: on_error=restore_only)")
            return Ok(None)
    return result


def _complete(*, env: ReleaseEnvironment, pr_number: int) -> Result[PullRequest | None, FlowError]:
    env.console.header(f"Complete dev-merge #{pr_number}")

    client = open_client(env)
    if isinstance(client, Err):
        return client

    pr = client.value.get_pull_request(pr_number)
    if isinstance(pr, Err):
        return pr

    merged = client.value.approve_pull_request(
        pr.value.number,
        commit_title=DEV_MERGE_COMMIT_TITLE,
        commit_message=DEV_MERGE_COMMIT_MESSAGE,
        merge_method=env.config.release.merge_method,
    )
    if isinstance(merged, Err):
        return merged

    env.console.success(f"merged #{pr_number}: {pr.value.head_ref} -> {pr.value.base_ref}")
    return Ok(merged.value)
