"""Typed errors for the release workflows.

Each error is a frozen dataclass carried in ``Err``; ``FlowError`` is the
union every workflow stage may return. All variants expose ``message``
and ``hint`` so generic renderers can print them without matching.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from psr.git.repository import BranchMissing, GitError


@dataclass(frozen=True, slots=True)
class ContextResolutionError:
    reason: Literal["git_missing", "not_a_repo", "wrong_project"]
    detail: str
    remote_url: str | None = None

    @property
    def message(self) -> str:
        match self.reason:
            case "git_missing":
                return "git: missing"
            case "not_a_repo":
                return f"not a git repository: {self.detail}"
            case "wrong_project":
                shown = self.remote_url or "(no remote url)"
                return f"remote is not the expected project: {shown}"

    @property
    def hint(self) -> str | None:
        return self.detail if self.reason != "not_a_repo" else None


@dataclass(frozen=True, slots=True)
class VersionError:
    version: str
    published: str | None
    detail: str = ""

    @property
    def message(self) -> str:
        if self.detail:
            return f"invalid version {self.version}: {self.detail}"
        return f"version {self.version} is not greater than published {self.published}"

    @property
    def hint(self) -> str | None:
        return "Expected MAJOR.MINOR.BUILD.REVISION, strictly greater than the published version"


@dataclass(frozen=True, slots=True)
class MissingReleaseNotesError:
    changelog: Path

    @property
    def message(self) -> str:
        return f"no release notes in the Unreleased section of {self.changelog.name}"

    @property
    def hint(self) -> str | None:
        return f"Add entries under '## [Unreleased]' in {self.changelog}"


@dataclass(frozen=True, slots=True)
class CredentialError:
    path: Path
    reason: Literal["missing", "corrupt", "unwritable"]
    detail: str = ""

    @property
    def message(self) -> str:
        match self.reason:
            case "missing":
                return f"credential not found: {self.path}"
            case "corrupt":
                return f"credential could not be decrypted: {self.path}"
            case "unwritable":
                return f"credential could not be written: {self.path}"

    @property
    def hint(self) -> str | None:
        if self.detail:
            return self.detail
        return "Run: psr auth store"


@dataclass(frozen=True, slots=True)
class BranchNotFoundError:
    branch: str

    @property
    def message(self) -> str:
        return f"branch not found: {self.branch}"

    @property
    def hint(self) -> str | None:
        return "Check the version/kind, or fetch the branch locally"


@dataclass(frozen=True, slots=True)
class ApiTimeoutError:
    ref: str
    attempts: int
    elapsed_seconds: float

    @property
    def message(self) -> str:
        minutes = self.elapsed_seconds / 60
        return (
            f"status of {self.ref} still pending after {self.attempts} checks "
            f"({minutes:.1f} min)"
        )

    @property
    def hint(self) -> str | None:
        return "Check the CI run for this ref, then retry"


@dataclass(frozen=True, slots=True)
class RemoteOperationError:
    operation: str
    status: int
    detail: str
    url: str = ""

    @property
    def message(self) -> str:
        if self.status:
            return f"{self.operation} failed (HTTP {self.status}): {self.detail}"
        return f"{self.operation} failed: {self.detail}"

    @property
    def hint(self) -> str | None:
        return self.url or None


@dataclass(frozen=True, slots=True)
class NotMergeableError:
    ref: str
    status: str

    @property
    def message(self) -> str:
        return f"{self.ref} is not mergeable: status is {self.status}"

    @property
    def hint(self) -> str | None:
        if self.status == "pending":
            return "Wait for CI to finish on the development branch"
        return "Fix the failing checks on the development branch"


@dataclass(frozen=True, slots=True)
class VcsOperationError:
    command: str
    detail: str

    @property
    def message(self) -> str:
        return f"git {self.command} failed"

    @property
    def hint(self) -> str | None:
        return self.detail or None


@dataclass(frozen=True, slots=True)
class ArtifactError:
    path: Path
    detail: str

    @property
    def message(self) -> str:
        return f"{self.path.name}: {self.detail}"

    @property
    def hint(self) -> str | None:
        return str(self.path)


FlowError = (
    ContextResolutionError
    | VersionError
    | MissingReleaseNotesError
    | CredentialError
    | BranchNotFoundError
    | ApiTimeoutError
    | RemoteOperationError
    | NotMergeableError
    | VcsOperationError
    | ArtifactError
)


def from_git(error: GitError | BranchMissing) -> VcsOperationError | BranchNotFoundError:
    """Translate a git layer error into a flow error."""
    match error:
        case BranchMissing(branch=branch):
            return BranchNotFoundError(branch=branch)
        case GitError(command=command, message=detail):
            return VcsOperationError(command=command, detail=detail)
