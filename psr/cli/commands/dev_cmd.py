from __future__ import annotations

from enum import Enum

import typer

from psr.cli.commands._helpers import unwrap_or_exit
from psr.cli.context import build_context
from psr.services.release.dev_merge import complete_dev_merge, start_dev_merge


dev_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Carry a feature/hotfix version bump into the development branch.",
)


class DevKind(str, Enum):
    feature = "feature"
    hotfix = "hotfix"


class OnError(str, Enum):
    propagate = "propagate"
    restore_only = "restore-only"


@dev_app.command("start")
def start(
    kind: DevKind = typer.Option(..., "--kind", help="Release branch kind."),
    version: str = typer.Option(..., "--version", help="New module version (A.B.C.D)."),
    release_notes: bool = typer.Option(
        True,
        "--release-notes/--no-release-notes",
        help="Move the CHANGELOG Unreleased notes into the release.",
    ),
    published_version: str | None = typer.Option(
        None,
        "--published-version",
        help="Compare against this version instead of the latest published release.",
    ),
) -> None:
    """Create the release branch, bump artifacts, and open a PR into dev."""
    ctx = build_context()
    number = unwrap_or_exit(
        start_dev_merge(
            env=ctx.env,
            kind=kind.value,
            version=version,
            include_release_notes=release_notes,
            published_version=published_version,
        ),
        ctx,
    )
    typer.echo(number)


@dev_app.command("complete")
def complete(
    pr: int = typer.Option(..., "--pr", min=1, help="Pull request number to merge."),
    on_error: OnError = typer.Option(
        OnError.propagate,
        "--on-error",
        help="restore-only: warn instead of failing when the merge call fails.",
    ),
) -> None:
    """Merge the dev-merge pull request."""
    ctx = build_context()
    policy = "restore_only" if on_error is OnError.restore_only else "propagate"
    merged = unwrap_or_exit(complete_dev_merge(env=ctx.env, pr_number=pr, on_error=policy), ctx)
    if merged is not None:
        typer.echo(merged.number)
