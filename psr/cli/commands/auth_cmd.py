from __future__ import annotations

import sys

import typer

from psr.cli.commands._helpers import exit_with_code, unwrap_or_exit
from psr.cli.context import build_context
from psr.core.errors import ErrorCode
from psr.output.console import Style
from psr.services.release.credential import load_credential, store_credential


auth_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Manage the stored API token.",
)


@auth_app.command("store")
def store(
    token_stdin: bool = typer.Option(
        False,
        "--token-stdin",
        help="Read the token from stdin instead of prompting.",
    ),
) -> None:
    """Encrypt and store the API token for the current user."""
    ctx = build_context()
    if token_stdin:
        token = sys.stdin.readline().strip()
    else:
        token = typer.prompt("API token", hide_input=True).strip()

    if not token:
        ctx.console.error("empty token")
        exit_with_code(int(ErrorCode.USER_ERROR))

    path = unwrap_or_exit(store_credential(token, path=ctx.env.credential_path), ctx)
    ctx.console.success(f"credential stored: {path}")


@auth_app.command("check")
def check() -> None:
    """Verify that the stored credential decrypts for this user."""
    ctx = build_context()
    credential = unwrap_or_exit(load_credential(path=ctx.env.credential_path), ctx)
    ctx.console.success("credential: ok")
    ctx.console.print(f"file: {credential.source}", Style.DIM)
