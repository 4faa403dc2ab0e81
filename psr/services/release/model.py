from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

BranchKind = Literal["feature", "hotfix", "dev_release"]
RefStatus = Literal["pending", "success", "failure"]
MergeMethod = Literal["merge", "squash", "rebase"]

# Completion-stage handling of remote errors after location is restored.
CompletionErrorPolicy = Literal["propagate", "restore_only"]


@dataclass(frozen=True, slots=True)
class RepositoryContext:
    """Identity of the project this run operates on; immutable for the run."""

    name: str
    web_url: str
    api_base_url: str

    def api(self, path: str) -> str:
        return f"{self.api_base_url}/{path.lstrip('/')}"


@dataclass(frozen=True, slots=True)
class ReleaseBranch:
    name: str
    base_branch: str
    kind: BranchKind


@dataclass(frozen=True, slots=True)
class PullRequest:
    number: int
    head_ref: str
    base_ref: str
    title: str
    body: str
    state: str  # open | closed
    merged: bool = False
    html_url: str = ""
    author: str | None = None


@dataclass(frozen=True, slots=True)
class UserProfile:
    login: str
    name: str | None


@dataclass(frozen=True, slots=True, order=True)
class ContributorRecord:
    login: str
    display_name: str


@dataclass(frozen=True, slots=True)
class Release:
    id: int
    tag_name: str
    name: str
    body: str
    draft: bool
    prerelease: bool
    html_url: str = ""


@dataclass(frozen=True, slots=True)
class PageResult(Generic[T]):
    """Items from a paginated listing; ``truncated`` when the page bound was hit."""

    items: tuple[T, ...]
    pages: int
    truncated: bool
