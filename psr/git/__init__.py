"""Git operations module.

Usage:
    from psr.git import Repository

    repo = Repository(Path("/src/PowerStig"))
    repo.create_release_branch("4.2.0.1", dev_branch="dev")
"""

from psr.git.repository import (
    BranchDeletion,
    BranchMissing,
    CommitOutcome,
    GitError,
    Repository,
    SwitchOutcome,
    normalize_branch_name,
)

__all__ = [
    "BranchDeletion",
    "BranchMissing",
    "CommitOutcome",
    "GitError",
    "Repository",
    "SwitchOutcome",
    "normalize_branch_name",
]
