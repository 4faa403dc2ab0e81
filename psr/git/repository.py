"""Git repository abstraction.

Branch, commit, push and prune operations against the local checkout.
Every operation shells out to ``git`` once per step, blocks until it
finishes, and returns a Result.

Usage:
    repo = Repository(Path("/src/PowerStig"))

    match repo.switch_branch("dev", skip_pull=False):
        case Ok(outcome):
            print("switched" if outcome.changed else "already there")
        case Err(e):
            print(f"Error: {e.message}")

No-op detection never depends on the wording of git's output: "nothing
to commit" is decided from ``git status --porcelain`` before committing.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from psr.core.result import Err, Ok, Result
from psr.output.console import ConsoleProtocol, Style
from psr.platform.process import ProcessError
from psr.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Long-lived branch names that must never be duplicated by case ("Dev" vs "dev").
_CASE_FOLDED_BRANCHES = frozenset({"dev", "master"})

__all__ = [
    "BranchDeletion",
    "BranchMissing",
    "CommitOutcome",
    "GitError",
    "Repository",
    "SwitchOutcome",
    "normalize_branch_name",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class BranchMissing:
    """The requested local branch does not exist."""

    branch: str


@dataclass(frozen=True, slots=True)
class SwitchOutcome:
    """Result of switch_branch.

    Attributes:
        branch: Branch that is checked out afterwards
        changed: False when the branch was already current (no checkout ran)
        pulled: True when a pull from the tracking remote ran
    """

    branch: str
    changed: bool
    pulled: bool


@dataclass(frozen=True, slots=True)
class CommitOutcome:
    branch: str
    committed: bool
    pushed: bool


@dataclass(frozen=True, slots=True)
class BranchDeletion:
    """Result of delete_branch.

    The local delete always happened when this is returned. Remote delete
    and prune are best-effort; their failures are listed in ``warnings``.
    """

    branch: str
    remote_deleted: bool
    pruned: bool
    warnings: tuple[str, ...] = ()


def normalize_branch_name(name: str) -> str:
    """Lower-case the long-lived branch names, leave everything else alone.

    >>> normalize_branch_name("Dev")
    'dev'
    >>> normalize_branch_name("4.2.0.1-Release")
    '4.2.0.1-Release'
    """
    stripped = name.strip()
    if stripped.lower() in _CASE_FOLDED_BRANCHES:
        return stripped.lower()
    return stripped


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
        remote: Remote used for pull/push/prune
    """

    def __init__(
        self,
        path: Path,
        *,
        remote: str = "origin",
        console: ConsoleProtocol | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            path: Path to repository root (containing .git)
            remote: Remote name for network operations
            console: Where to echo commands and no-op notices (silent if None)
        """
        self.path = path
        self.remote = remote
        self._console = console

    def exists(self) -> bool:
        """Check if this is a valid git repository."""
        return (self.path / ".git").exists()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_pending_changes(self) -> Result[bool, GitError]:
        """True if the working tree or index differs from HEAD."""
        result = self._run(["status", "--porcelain"])
        match result:
            case Err(e):
                return Err(self._error("status --porcelain", e, "git status failed"))
            case Ok(stdout):
                return Ok(stdout.strip() != "")

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch in ("", "HEAD") else branch
            case Err(_):
                return None

    def branch_exists(self, name: str) -> bool:
        """Check whether a local branch exists."""
        ref = f"refs/heads/{normalize_branch_name(name)}"
        return isinstance(self._run(["rev-parse", "--verify", "--quiet", ref]), Ok)

    def remote_url(self, remote: str | None = None) -> Result[str, GitError]:
        """Configured URL of ``remote`` (empty string when unset)."""
        name = remote or self.remote
        result = self._run(["config", "--get", f"remote.{name}.url"])
        match result:
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e):
                # `git config --get` exits 1 for a missing key.
                if e.returncode == 1 and not e.stderr.strip():
                    return Ok("")
                return Err(self._error("config --get", e, "git config failed"))

    # -------------------------------------------------------------------------
    # Branch operations
    # -------------------------------------------------------------------------

    def switch_branch(
        self, name: str, *, skip_pull: bool
    ) -> Result[SwitchOutcome, GitError | BranchMissing]:
        """Check out ``name`` and pull it unless ``skip_pull``.

        Already being on the branch is a no-op: no checkout and no pull.
        """
        target = normalize_branch_name(name)
        current = self.current_branch()
        if current is not None and normalize_branch_name(current) == target:
            self._echo(f"already on {target}", Style.DIM)
            return Ok(SwitchOutcome(branch=target, changed=False, pulled=False))

        if not self.branch_exists(target):
            return Err(BranchMissing(branch=target))

        self._echo(f"git checkout {target}", Style.DIM)
        checkout = self._run(["checkout", target])
        if isinstance(checkout, Err):
            return Err(self._error(f"checkout {target}", checkout.error, "checkout failed"))

        if skip_pull:
            return Ok(SwitchOutcome(branch=target, changed=True, pulled=False))

        pulled = self.pull_ff()
        if isinstance(pulled, Err):
            return pulled
        return Ok(SwitchOutcome(branch=target, changed=True, pulled=True))

    def create_release_branch(
        self, name: str, *, dev_branch: str
    ) -> Result[bool, GitError | BranchMissing]:
        """Create ``name`` off the development line, or check it out if it exists.

        Returns:
            Ok(True) if the branch was created, Ok(False) if it was reused.
        """
        on_dev = self.switch_branch(dev_branch, skip_pull=False)
        if isinstance(on_dev, Err):
            return on_dev

        if self.branch_exists(name):
            self._echo(f"git checkout {name} (existing branch)", Style.DIM)
            checkout = self._run(["checkout", name])
            if isinstance(checkout, Err):
                return Err(self._error(f"checkout {name}", checkout.error, "checkout failed"))
            return Ok(False)

        self._echo(f"git checkout -b {name}", Style.DIM)
        created = self._run(["checkout", "-b", name])
        if isinstance(created, Err):
            return Err(self._error(f"checkout -b {name}", created.error, "branch create failed"))
        return Ok(True)

    def delete_branch(
        self, name: str, *, dev_branch: str
    ) -> Result[BranchDeletion, GitError | BranchMissing]:
        """Delete ``name`` locally and on the remote, then prune.

        Switches to the development line first. Remote delete and prune are
        best-effort and never undo the local delete.
        """
        if not self.branch_exists(name):
            return Err(BranchMissing(branch=name))

        on_dev = self.switch_branch(dev_branch, skip_pull=True)
        if isinstance(on_dev, Err):
            return on_dev

        self._echo(f"git branch -D {name}", Style.DIM)
        local = self._run(["branch", "-D", name])
        if isinstance(local, Err):
            return Err(self._error(f"branch -D {name}", local.error, "branch delete failed"))

        warnings: list[str] = []

        self._echo(f"git push {self.remote} --delete {name}", Style.DIM)
        remote = self._run(["push", self.remote, "--delete", name])
        if isinstance(remote, Err):
            warnings.append(
                f"remote delete of {name} failed: {remote.error.stderr.strip() or remote.error}"
            )

        self._echo(f"git remote prune {self.remote}", Style.DIM)
        prune = self._run(["remote", "prune", self.remote])
        if isinstance(prune, Err):
            warnings.append(f"prune failed: {prune.error.stderr.strip() or prune.error}")

        return Ok(
            BranchDeletion(
                branch=name,
                remote_deleted=isinstance(remote, Ok),
                pruned=isinstance(prune, Ok),
                warnings=tuple(warnings),
            )
        )

    # -------------------------------------------------------------------------
    # Commit / network operations
    # -------------------------------------------------------------------------

    def commit_and_push(self, branch: str, message: str) -> Result[CommitOutcome, GitError]:
        """Stage everything, commit and push with upstream tracking.

        With nothing to commit the push is skipped and the outcome reports
        ``committed=False``; that is a success, not an error.
        """
        self._echo("git add -A", Style.DIM)
        add = self._run(["add", "-A"])
        if isinstance(add, Err):
            return Err(self._error("add -A", add.error, "git add failed"))

        pending = self.has_pending_changes()
        if isinstance(pending, Err):
            return pending
        if not pending.value:
            self._echo("nothing to commit; skipping push", Style.DIM)
            return Ok(CommitOutcome(branch=branch, committed=False, pushed=False))

        self._echo(f"git commit -m {message}", Style.DIM)
        commit = self._run(["commit", "-m", message])
        if isinstance(commit, Err):
            e = commit.error
            return Err(
                GitError(
                    command="commit",
                    message=e.stderr.strip()
                    or "git commit failed (configure user.name/user.email)",
                    returncode=e.returncode,
                )
            )

        self._echo(f"git push -u {self.remote} {branch}", Style.DIM)
        push = self._run(["push", "-u", self.remote, branch])
        if isinstance(push, Err):
            return Err(self._error(f"push -u {self.remote} {branch}", push.error, "push failed"))

        return Ok(CommitOutcome(branch=branch, committed=True, pushed=True))

    def pull_ff(self) -> Result[str, GitError]:
        """Pull from the tracking remote, fast-forward only."""
        self._echo("git pull --ff-only", Style.DIM)
        result = self._run(["pull", "--ff-only"])
        match result:
            case Err(e):
                return Err(self._error("pull --ff-only", e, "pull failed"))
            case Ok(stdout):
                return Ok(stdout.strip())

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"pull", "push"}
            or (command == "remote" and "prune" in args)
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _echo(self, message: str, style: Style) -> None:
        if self._console is not None:
            self._console.print(message, style)

    @staticmethod
    def _error(command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or fallback,
            returncode=e.returncode,
        )
