"""Tests for psr.platform.paths module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from psr.platform.paths import APP_NAME, clear_caches, home, user_config_dir


@pytest.fixture(autouse=True)
def clear_path_caches() -> None:
    clear_caches()


def test_home_uses_home_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    with patch("psr.platform.paths.is_windows", return_value=False):
        assert home() == tmp_path


def test_config_dir_honours_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    with patch("psr.platform.paths.is_windows", return_value=False):
        assert user_config_dir() == tmp_path / APP_NAME


def test_config_dir_defaults_under_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    with patch("psr.platform.paths.is_windows", return_value=False):
        assert user_config_dir() == tmp_path / ".config" / "psr"


def test_config_dir_on_windows(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("APPDATA", str(tmp_path))
    with patch("psr.platform.paths.is_windows", return_value=True):
        assert user_config_dir() == tmp_path / APP_NAME
