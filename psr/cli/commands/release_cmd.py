from __future__ import annotations

import typer

from psr.cli.commands._helpers import unwrap_or_exit
from psr.cli.commands.dev_cmd import DevKind
from psr.cli.context import build_context
from psr.services.release.promote import complete_release, start_release


release_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Promote the development branch to the stable branch and publish.",
)


@release_app.command("start")
def start() -> None:
    """Open the dev -> stable pull request if the dev status is green."""
    ctx = build_context()
    number = unwrap_or_exit(start_release(env=ctx.env), ctx)
    typer.echo(number)


@release_app.command("complete")
def complete(
    pr: int = typer.Option(..., "--pr", min=1, help="Release pull request number."),
    kind: DevKind = typer.Option(..., "--kind", help="Kind of the release branch to delete."),
    version: str = typer.Option(..., "--version", help="Released module version (A.B.C.D)."),
) -> None:
    """Merge the release PR, publish the release, and delete the release branch."""
    ctx = build_context()
    release = unwrap_or_exit(
        complete_release(env=ctx.env, pr_number=pr, kind=kind.value, version=version),
        ctx,
    )
    typer.echo(release.tag_name)
