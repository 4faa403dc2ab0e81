"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from psr.core.result import Err, Ok, Result
from psr.output.errors import flow_error_exit_code, print_flow_error
from psr.services.release.errors import FlowError

if TYPE_CHECKING:
    from psr.cli.context import CLIContext


T = TypeVar("T")


def unwrap_or_exit(result: Result[T, FlowError], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit with its mapped code."""
    match result:
        case Ok(value):
            return value
        case Err(error):
            print_flow_error(error, ctx.console)
            raise typer.Exit(code=flow_error_exit_code(error))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
