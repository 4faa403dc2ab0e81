"""Shared fakes for the release workflow tests.

``FakeGit`` stands in for the git CLI behind ``psr.git.repository.run_process``
and keeps just enough state (branches, HEAD, pending changes, remote url)
for the workflows to run end to end against a ``tmp_path`` checkout.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import pytest

from psr.core.config import ReleaseConfig
from psr.core.result import Err, Ok, Result
from psr.git import repository as repo_mod
from psr.git.repository import Repository
from psr.output.console import MockConsole
from psr.platform.http import MockHttpClient
from psr.platform.process import ProcessError
from psr.services.release import context as context_mod
from psr.services.release.credential import store_credential
from psr.services.release.session import ReleaseEnvironment

API = "https://api.github.com/repos/microsoft/PowerStig"
TOKEN = "ghp_test_token"

CHANGELOG = """# Change log for PowerStig

## [Unreleased]

* Added the Windows Server 2022 STIG
* Fixed rule 1234 parsing

## [4.1.9.0] - 2026-01-10

* Previous release
"""

MANIFEST = """@{
    RootModule = 'PowerStig.psm1'
    ModuleVersion = '4.1.9.0'
    PrivateData = @{
        PSData = @{
            ReleaseNotes = 'old notes'
        }
    }
}
"""

BUILD_CONFIG = """#---------------------------------#
version: 4.1.9.{build}
install:
  - git clone https://github.com/PowerShell/DscResource.Tests
"""

README = """# PowerStig

Some text.

## Contributors

* [@old](https://github.com/old)

## License
"""


def _fail(cmd: list[str], stderr: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(ProcessError(command=tuple(cmd), returncode=returncode, stdout="", stderr=stderr))


@dataclass
class FakeGit:
    """In-memory git CLI."""

    current: str = "dev"
    branches: set[str] = field(default_factory=lambda: {"dev", "master"})
    remote_url: str = "https://github.com/microsoft/PowerStig.git"
    # Whether `git add -A` finds anything to commit.
    dirty_on_add: bool = True
    fail: dict[str, str] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)
    # Runs on `git pull`; stands in for commits arriving from the remote.
    on_pull: Callable[[], None] | None = None
    _staged: bool = False

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd
        del timeout
        assert cmd[:2] == ["git", "-C"]
        args = cmd[3:]
        self.calls.append(args)

        key = " ".join(args)
        for prefix, stderr in self.fail.items():
            if key.startswith(prefix):
                return _fail(cmd, stderr)

        match args:
            case ["rev-parse", "--abbrev-ref", "HEAD"]:
                return Ok(f"{self.current}\n")
            case ["rev-parse", "--verify", "--quiet", ref]:
                name = ref.removeprefix("refs/heads/")
                return Ok("abc123\n") if name in self.branches else _fail(cmd, "")
            case ["config", "--get", _]:
                return Ok(f"{self.remote_url}\n") if self.remote_url else _fail(cmd, "")
            case ["checkout", "-b", name]:
                self.branches.add(name)
                self.current = name
                return Ok("")
            case ["checkout", name]:
                if name not in self.branches:
                    return _fail(cmd, f"error: pathspec '{name}' did not match")
                self.current = name
                return Ok("")
            case ["pull", "--ff-only"]:
                if self.on_pull is not None:
                    self.on_pull()
                return Ok("")
            case ["remote", "prune", _]:
                return Ok("")
            case ["add", "-A"]:
                self._staged = self.dirty_on_add
                return Ok("")
            case ["status", "--porcelain"]:
                return Ok("M  CHANGELOG.md\n" if self._staged else "")
            case ["commit", "-m", _]:
                self._staged = False
                return Ok("")
            case ["push", "-u", _, _] | ["push", _, "--delete", _]:
                return Ok("")
            case ["branch", "-D", name]:
                self.branches.discard(name)
                return Ok("")
        raise AssertionError(f"unexpected git command: {args}")

    def ran(self, *args: str) -> bool:
        return list(args) in self.calls

    def ran_prefix(self, *args: str) -> bool:
        return any(c[: len(args)] == list(args) for c in self.calls)


@pytest.fixture
def fake_git(monkeypatch: pytest.MonkeyPatch) -> FakeGit:
    git = FakeGit()
    monkeypatch.setattr(repo_mod, "run_process", git)
    monkeypatch.setattr(context_mod, "which", lambda name: f"/usr/bin/{name}")
    return git


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    """A PowerStig-like working tree with the release artifacts."""
    root = tmp_path / "PowerStig"
    (root / ".git").mkdir(parents=True)
    (root / "CHANGELOG.md").write_text(CHANGELOG, encoding="utf-8")
    (root / "PowerStig.psd1").write_text(MANIFEST, encoding="utf-8")
    (root / "PowerStig.psm1").write_text("# module\n", encoding="utf-8")
    (root / "appveyor.yml").write_text(BUILD_CONFIG, encoding="utf-8")
    (root / "README.md").write_text(README, encoding="utf-8")
    return root


@pytest.fixture
def credential_file(tmp_path: Path) -> Path:
    path = tmp_path / "config" / "credential.bin"
    stored = store_credential(TOKEN, path=path)
    assert isinstance(stored, Ok)
    return path


@pytest.fixture
def release_env(
    fake_git: FakeGit,
    checkout: Path,
    credential_file: Path,
) -> ReleaseEnvironment:
    del fake_git
    console = MockConsole()
    return ReleaseEnvironment(
        repo=Repository(checkout, console=console),
        config=ReleaseConfig(),
        http=MockHttpClient(),
        console=console,
        credential_path=credential_file,
        today=lambda: date(2026, 10, 18),
    )
