from __future__ import annotations

from psr.services.release.model import BranchKind, ReleaseBranch

DEV_MERGE_COMMIT_TITLE = "Release merge"
DEV_MERGE_COMMIT_MESSAGE = "Merging release branch into dev"
RELEASE_COMMIT_TITLE = "Release"
RELEASE_COMMIT_MESSAGE = "Merging dev into master for release"

API_HOST_PREFIX = "api."
API_PATH_PREFIX = "repos"

# Authors whose pull requests predate the repository migration and are
# therefore not visible through the pull request listing.
PRE_MIGRATION_CONTRIBUTORS: dict[str, tuple[tuple[str, str], ...]] = {
    "PowerStig": (
        ("athaynes", "Adam Haynes"),
        ("bcwilhite", "Brian Wilhite"),
        ("regedit32", "Reggie Gibson"),
    ),
}


def release_branch_for(*, kind: BranchKind, version: str, dev_branch: str) -> ReleaseBranch:
    match kind:
        case "feature":
            name = version
        case "hotfix" | "dev_release":
            name = f"{version}-Release"
    return ReleaseBranch(name=name, base_branch=dev_branch, kind=kind)


def release_tag_for(*, version: str, suffix: str) -> str:
    return f"{version}{suffix}"
