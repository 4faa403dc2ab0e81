"""Tests for psr.output.console module."""

from __future__ import annotations

import pytest

from psr.output.console import MockConsole, RichConsole, Style


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.print("git push -u origin 4.2.0.1", Style.DIM)
        console.success("done")
        console.warning("prune failed")
        console.error("boom")
        console.header("Dev-merge")

        assert [o.style for o in console.outputs] == [
            Style.DIM,
            Style.SUCCESS,
            Style.WARNING,
            Style.ERROR,
            Style.HEADER,
        ]
        assert console.has_error()
        assert console.has_warning()
        assert "git push" in console.text

    def test_find(self) -> None:
        console = MockConsole()
        console.print("git checkout dev", Style.DIM)
        console.print("git pull --ff-only", Style.DIM)
        assert len(console.find("git ")) == 2
        assert console.find("push") == []


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(stderr=True)
        console.warning("bot login dependabot[bot] skipped")
        console.print("[Unreleased]", Style.DIM)
        err = capsys.readouterr().err
        assert "dependabot[bot]" in err
        assert "[Unreleased]" in err

    def test_stdout_stays_clean(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().success("merged")
        assert capsys.readouterr().out == ""
