"""Error presentation utilities.

Centralized error formatting and exit code mapping for the release
workflows, so every command reports failures the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from psr.core.errors import ErrorCode
from psr.output.console import Style
from psr.services.release.errors import (
    ApiTimeoutError,
    ArtifactError,
    BranchNotFoundError,
    ContextResolutionError,
    CredentialError,
    FlowError,
    MissingReleaseNotesError,
    NotMergeableError,
    RemoteOperationError,
    VcsOperationError,
    VersionError,
)

if TYPE_CHECKING:
    from psr.output.console import ConsoleProtocol

__all__ = ["print_flow_error", "flow_error_exit_code"]


def print_flow_error(error: FlowError, console: ConsoleProtocol) -> None:
    """Print a workflow error to console with appropriate formatting."""
    match error:
        case ContextResolutionError(reason="wrong_project", remote_url=url, detail=detail):
            console.error(f"remote is not the expected project: {url or '(none)'}")
            console.print(f"hint: {detail}", Style.DIM)
        case ContextResolutionError():
            console.error(error.message)
            if error.hint:
                console.print(f"hint: {error.hint}", Style.DIM)
        case VersionError() | MissingReleaseNotesError() | BranchNotFoundError():
            console.error(error.message)
            if error.hint:
                console.print(f"hint: {error.hint}", Style.DIM)
        case CredentialError(path=path):
            console.error(error.message)
            console.print(f"hint: {error.hint}", Style.DIM)
            console.print(f"file: {path}", Style.DIM)
        case NotMergeableError(ref=ref, status=status):
            console.error(f"{ref} is not mergeable: status is {status}")
            console.print(f"hint: {error.hint}", Style.DIM)
        case ApiTimeoutError():
            console.error(error.message)
            console.print(f"hint: {error.hint}", Style.DIM)
        case RemoteOperationError(url=url):
            console.error(error.message)
            if url:
                console.print(url, Style.DIM)
        case VcsOperationError(detail=detail):
            console.error(error.message)
            if detail:
                console.print(detail, Style.DIM)
        case ArtifactError(path=path, detail=detail):
            console.error(f"{path.name}: {detail}")
            console.print(str(path), Style.DIM)


def flow_error_exit_code(error: FlowError) -> int:
    """Get exit code for a workflow error."""
    match error:
        case VersionError() | MissingReleaseNotesError() | BranchNotFoundError():
            return int(ErrorCode.USER_ERROR)
        case ContextResolutionError() | CredentialError():
            return int(ErrorCode.ENV_ERROR)
        case NotMergeableError() | VcsOperationError():
            return int(ErrorCode.WORKFLOW_ERROR)
        case RemoteOperationError() | ApiTimeoutError():
            return int(ErrorCode.NETWORK_ERROR)
        case ArtifactError():
            return int(ErrorCode.IO_ERROR)
