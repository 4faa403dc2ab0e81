from __future__ import annotations

import typer

from psr.cli.commands._helpers import unwrap_or_exit
from psr.cli.context import build_context
from psr.output.console import Style
from psr.services.release.context import resolve_context


def context() -> None:
    """Show the project identity derived from the remote URL."""
    ctx = build_context()
    resolved = unwrap_or_exit(
        resolve_context(repo=ctx.env.repo, project=ctx.config.project), ctx
    )

    ctx.console.print(f"name: {resolved.name}")
    ctx.console.print(f"web: {resolved.web_url}")
    ctx.console.print(f"api: {resolved.api_base_url}")
    ctx.console.print(f"dev: {ctx.env.dev_branch}  stable: {ctx.env.stable_branch}", Style.DIM)
    ctx.console.print(f"credential: {ctx.env.credential_path}", Style.DIM)
    typer.echo(resolved.api_base_url)
