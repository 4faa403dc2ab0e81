from __future__ import annotations

import os
from pathlib import Path

import typer

from psr import __version__
from psr.cli.commands.auth_cmd import auth_app
from psr.cli.commands.context_cmd import context
from psr.cli.commands.dev_cmd import dev_app
from psr.cli.commands.release_cmd import release_app
from psr.cli.context import REPO_ROOT_ENV_VAR
from psr.core.errors import ErrorCode
from psr.services.release.credential import CREDENTIAL_ENV_VAR


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(context)

# Sub-apps
app.add_typer(dev_app, name="dev")
app.add_typer(release_app, name="release")
app.add_typer(auth_app, name="auth")


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Repository root (defaults to the current directory)",
    ),
    credential: Path | None = typer.Option(
        None,
        "--credential",
        help="Encrypted credential file (overrides the per-user default)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    if repo is not None:
        try:
            root = repo.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --repo: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --repo '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[REPO_ROOT_ENV_VAR] = str(root)

    if credential is not None:
        os.environ[CREDENTIAL_ENV_VAR] = str(credential.expanduser())


def main() -> None:
    app()
