from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from psr.core.config import ProjectConfig
from psr.core.result import Err, Ok
from psr.git.repository import Repository
from psr.services.release import context as context_mod
from psr.services.release.context import context_from_remote_url, resolve_context
from psr.services.release.model import RepositoryContext

if TYPE_CHECKING:
    from conftest import FakeGit

POWERSTIG = ProjectConfig()


class TestContextFromRemoteUrl:
    def test_example_host(self) -> None:
        project = ProjectConfig(host="code.example.com", namespace="Org", name="Proj")
        result = context_from_remote_url("https://code.example.com/Org/Proj.git", project=project)
        assert result == Ok(
            RepositoryContext(
                name="Proj",
                web_url="https://code.example.com/Org/Proj",
                api_base_url="https://api.code.example.com/repos/Org/Proj",
            )
        )

    def test_without_git_suffix(self) -> None:
        result = context_from_remote_url(
            "https://github.com/microsoft/PowerStig", project=POWERSTIG
        )
        assert isinstance(result, Ok)
        assert result.value.api_base_url == "https://api.github.com/repos/microsoft/PowerStig"

    def test_ssh_remote(self) -> None:
        result = context_from_remote_url("git@github.com:microsoft/PowerStig.git", project=POWERSTIG)
        assert isinstance(result, Ok)
        assert result.value.web_url == "https://github.com/microsoft/PowerStig"

    def test_api_url_builds_endpoints(self) -> None:
        result = context_from_remote_url(
            "https://github.com/microsoft/PowerStig.git", project=POWERSTIG
        )
        assert isinstance(result, Ok)
        assert result.value.api("pulls/7") == (
            "https://api.github.com/repos/microsoft/PowerStig/pulls/7"
        )

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/someone/PowerStig.git",
            "https://gitlab.com/microsoft/PowerStig.git",
            "https://github.com/microsoft/PowerStigConverter.git",
            "https://github.com/microsoft/a/b.git",
            "",
        ],
    )
    def test_wrong_project_fails_closed(self, url: str) -> None:
        result = context_from_remote_url(url, project=POWERSTIG)
        assert isinstance(result, Err)
        assert result.error.reason == "wrong_project"

    def test_any_name_when_unpinned(self) -> None:
        project = ProjectConfig(name=None)
        result = context_from_remote_url(
            "https://github.com/microsoft/PowerStigConverter.git", project=project
        )
        assert isinstance(result, Ok)
        assert result.value.name == "PowerStigConverter"


class TestResolveContext:
    def test_resolves_from_origin(self, fake_git: FakeGit, checkout: Path) -> None:
        del fake_git
        result = resolve_context(repo=Repository(checkout), project=POWERSTIG)
        assert isinstance(result, Ok)
        assert result.value.name == "PowerStig"

    def test_git_missing(self, monkeypatch: pytest.MonkeyPatch, checkout: Path) -> None:
        monkeypatch.setattr(context_mod, "which", lambda name: None)
        result = resolve_context(repo=Repository(checkout), project=POWERSTIG)
        assert isinstance(result, Err)
        assert result.error.reason == "git_missing"
        assert result.error.message == "git: missing"

    def test_not_a_repo(self, fake_git: FakeGit, tmp_path: Path) -> None:
        del fake_git
        result = resolve_context(repo=Repository(tmp_path), project=POWERSTIG)
        assert isinstance(result, Err)
        assert result.error.reason == "not_a_repo"

    def test_fork_remote(self, fake_git: FakeGit, checkout: Path) -> None:
        fake_git.remote_url = "https://github.com/someone/PowerStig.git"
        result = resolve_context(repo=Repository(checkout), project=POWERSTIG)
        assert isinstance(result, Err)
        assert result.error.remote_url == "https://github.com/someone/PowerStig.git"
