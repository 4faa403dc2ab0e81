from __future__ import annotations

import codecs
from datetime import date
from pathlib import Path

import pytest

from psr.core.config import ReleaseConfig
from psr.core.result import Err, Ok
from psr.services.release import artifacts as artifacts_mod
from psr.services.release.artifacts import (
    ArtifactEdit,
    ArtifactPaths,
    apply_release_artifacts,
    build_config_version,
    manifest_release_notes,
    manifest_version,
    read_artifact,
    set_build_config_version,
    set_manifest_release_notes,
    set_manifest_version,
    unreleased_notes,
    update_changelog,
    write_artifacts,
)
from psr.services.release.version import ModuleVersion

V = ModuleVersion(4, 2, 0, 1)
DAY = date(2026, 10, 18)

CHANGELOG = """# Change log

## [Unreleased]

* Added a rule

## [4.1.9.0] - 2026-01-10

* Old
"""


class TestChangelog:
    def test_unreleased_notes(self) -> None:
        assert unreleased_notes(CHANGELOG) == "* Added a rule"

    def test_unreleased_notes_empty(self) -> None:
        assert unreleased_notes("# Log\n\n## Unreleased\n\n## 1.0.0.0\n") == ""
        assert unreleased_notes("# Log\n") == ""

    def test_update_moves_notes(self) -> None:
        updated = update_changelog(CHANGELOG, version=V, released_on=DAY)
        assert updated is not None
        assert unreleased_notes(updated) == ""
        assert "## [4.2.0.1] - 2026-10-18\n\n* Added a rule\n\n## [4.1.9.0]" in updated
        assert updated.index("## [Unreleased]") < updated.index("## [4.2.0.1]")

    def test_update_is_idempotent(self) -> None:
        once = update_changelog(CHANGELOG, version=V, released_on=DAY)
        assert once is not None
        assert update_changelog(once, version=V, released_on=DAY) == once

    def test_keeps_crlf(self) -> None:
        crlf = CHANGELOG.replace("\n", "\r\n")
        updated = update_changelog(crlf, version=V, released_on=DAY)
        assert updated is not None
        assert "\n" not in updated.replace("\r\n", "")

    def test_no_header(self) -> None:
        assert update_changelog("# Log\n", version=V, released_on=DAY) is None


class TestManifest:
    text = "@{\n    ModuleVersion = '4.1.9.0'\n    ReleaseNotes = 'It''s fixed'\n}\n"

    def test_read(self) -> None:
        assert manifest_version(self.text) == "4.1.9.0"
        assert manifest_release_notes(self.text) == "It's fixed"

    def test_set_version(self) -> None:
        updated = set_manifest_version(self.text, V)
        assert updated is not None
        assert manifest_version(updated) == "4.2.0.1"

    def test_set_notes_escapes_quotes(self) -> None:
        updated = set_manifest_release_notes(self.text, "* Don't break\n* Multi-line")
        assert updated is not None
        assert "ReleaseNotes = '* Don''t break\n* Multi-line'" in updated
        assert manifest_release_notes(updated) == "* Don't break\n* Multi-line"

    def test_missing_fields(self) -> None:
        assert set_manifest_version("@{}", V) is None
        assert set_manifest_release_notes("@{}", "x") is None


class TestBuildConfig:
    def test_version_line(self) -> None:
        text = "image: x\nversion: 4.1.9.{build}\n"
        assert build_config_version(text) == "4.1.9"
        updated = set_build_config_version(text, V)
        assert updated == "image: x\nversion: 4.2.0.{build}\n"

    def test_missing(self) -> None:
        assert set_build_config_version("image: x\n", V) is None


class TestApplyReleaseArtifacts:
    def _paths(self, root: Path) -> ArtifactPaths:
        return ArtifactPaths.from_config(repo_root=root, config=ReleaseConfig())

    def test_updates_all_three(self, checkout: Path) -> None:
        paths = self._paths(checkout)
        result = apply_release_artifacts(
            paths=paths, version=V, release_notes="* Added", released_on=DAY
        )

        assert isinstance(result, Ok)
        assert set(result.value) == {paths.changelog, paths.manifest, paths.build_config}
        manifest = paths.manifest.read_text(encoding="utf-8")
        assert manifest_version(manifest) == "4.2.0.1"
        assert manifest_release_notes(manifest) == "* Added"
        assert "version: 4.2.0.{build}" in paths.build_config.read_text(encoding="utf-8")
        assert "## [4.2.0.1] - 2026-10-18" in paths.changelog.read_text(encoding="utf-8")

    def test_without_notes_only_versions_change(self, checkout: Path) -> None:
        paths = self._paths(checkout)
        before = paths.changelog.read_text(encoding="utf-8")

        result = apply_release_artifacts(paths=paths, version=V, release_notes=None, released_on=DAY)

        assert isinstance(result, Ok)
        assert paths.changelog not in result.value
        assert paths.changelog.read_text(encoding="utf-8") == before
        manifest = paths.manifest.read_text(encoding="utf-8")
        assert manifest_release_notes(manifest) == "old notes"

    def test_malformed_file_writes_nothing(self, checkout: Path) -> None:
        paths = self._paths(checkout)
        paths.build_config.write_text("image: x\n", encoding="utf-8")
        before = paths.manifest.read_text(encoding="utf-8")

        result = apply_release_artifacts(
            paths=paths, version=V, release_notes="* Added", released_on=DAY
        )

        assert isinstance(result, Err)
        assert result.error.path == paths.build_config
        assert paths.manifest.read_text(encoding="utf-8") == before

    def test_missing_manifest(self, checkout: Path) -> None:
        paths = self._paths(checkout)
        paths.manifest.unlink()
        result = apply_release_artifacts(paths=paths, version=V, release_notes=None, released_on=DAY)
        assert isinstance(result, Err)
        assert result.error.detail == "file not found"

    def test_keeps_crlf_and_bom_on_disk(self, checkout: Path) -> None:
        paths = self._paths(checkout)
        for path in (paths.changelog, paths.build_config):
            path.write_bytes(path.read_bytes().replace(b"\n", b"\r\n"))
        manifest = paths.manifest.read_bytes().replace(b"\n", b"\r\n")
        paths.manifest.write_bytes(codecs.BOM_UTF8 + manifest)

        result = apply_release_artifacts(
            paths=paths, version=V, release_notes="* Ajouté é", released_on=DAY
        )

        assert isinstance(result, Ok)
        for path in (paths.changelog, paths.manifest, paths.build_config):
            raw = path.read_bytes()
            assert b"\n" not in raw.replace(b"\r\n", b""), path.name
        raw_manifest = paths.manifest.read_bytes()
        assert raw_manifest.startswith(codecs.BOM_UTF8)
        assert "ReleaseNotes = '* Ajouté é'" in raw_manifest.decode("utf-8-sig")
        assert not paths.changelog.read_bytes().startswith(codecs.BOM_UTF8)
        assert b"## [4.2.0.1] - 2026-10-18\r\n" in paths.changelog.read_bytes()

    def test_failed_write_restores_earlier_files(
        self, checkout: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        paths = self._paths(checkout)
        before = {p: p.read_bytes() for p in (paths.changelog, paths.manifest, paths.build_config)}
        real_write = artifacts_mod.atomic_write_bytes

        def failing_write(path: Path, content: bytes, *, mode: int | None = None) -> None:
            if path == paths.build_config:
                raise OSError("disk full")
            real_write(path, content, mode=mode)

        monkeypatch.setattr(artifacts_mod, "atomic_write_bytes", failing_write)

        result = apply_release_artifacts(
            paths=paths, version=V, release_notes="* Added", released_on=DAY
        )

        assert isinstance(result, Err)
        assert result.error.path == paths.build_config
        assert "disk full" in result.error.detail
        assert {p: p.read_bytes() for p in before} == before


class TestReadArtifact:
    def test_remembers_bom(self, tmp_path: Path) -> None:
        path = tmp_path / "PowerStig.psd1"
        path.write_bytes(codecs.BOM_UTF8 + b"@{\r\n}\r\n")

        result = read_artifact(path)

        assert isinstance(result, Ok)
        assert result.value.text == "@{\r\n}\r\n"
        assert result.value.bom is True
        assert result.value.encode(result.value.text) == path.read_bytes()

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "CHANGELOG.md"
        path.write_bytes(b"\xff\xfe# Log")
        result = read_artifact(path)
        assert isinstance(result, Err)
        assert result.error.detail.startswith("not UTF-8")


class TestWriteArtifacts:
    def test_unchanged_edits_are_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "README.md"
        path.write_text("# Readme\n", encoding="utf-8")
        original = read_artifact(path)
        assert isinstance(original, Ok)

        result = write_artifacts([ArtifactEdit(original=original.value, text="# Readme\n")])

        assert result == Ok([])
