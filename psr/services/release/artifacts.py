from __future__ import annotations

import codecs
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from psr.core.config import ReleaseConfig
from psr.core.result import Err, Ok, Result
from psr.platform.files import atomic_write_bytes
from psr.services.release.errors import ArtifactError
from psr.services.release.version import ModuleVersion

_UNRELEASED_RE = re.compile(r"(?im)^##[ \t]*\[?unreleased\]?[ \t]*(?=\r?$)")
_SECTION_RE = re.compile(r"(?m)^##[ \t]")
_MANIFEST_VERSION_RE = re.compile(r"(?m)^([ \t]*ModuleVersion[ \t]*=[ \t]*)'([^']*)'")
_MANIFEST_NOTES_RE = re.compile(r"(?ms)^([ \t]*ReleaseNotes[ \t]*=[ \t]*)'((?:[^']|'')*)'")
_BUILD_VERSION_RE = re.compile(r"(?m)^([ \t]*version:[ \t]*)(\d+\.\d+\.\d+)(\.\{build\})[ \t]*(?=\r?$)")


@dataclass(frozen=True, slots=True)
class ArtifactPaths:
    changelog: Path
    manifest: Path
    build_config: Path

    @classmethod
    def from_config(cls, *, repo_root: Path, config: ReleaseConfig) -> ArtifactPaths:
        return cls(
            changelog=repo_root / config.artifacts.changelog,
            manifest=repo_root / config.manifest_path(),
            build_config=repo_root / config.artifacts.build_config,
        )


# -----------------------------------------------------------------------------
# Changelog
# -----------------------------------------------------------------------------


def newline_of(text: str) -> str:
    """The line ending a text already uses, "\\n" when it has none."""
    return "\r\n" if "\r\n" in text else "\n"


def _unreleased_span(text: str) -> tuple[int, int] | None:
    header = _UNRELEASED_RE.search(text)
    if header is None:
        return None
    start = header.end()
    following = _SECTION_RE.search(text, start)
    end = following.start() if following is not None else len(text)
    return (start, end)


def unreleased_notes(changelog: str) -> str:
    """Text of the Unreleased section, stripped ("" if absent or empty)."""
    span = _unreleased_span(changelog)
    if span is None:
        return ""
    return changelog[span[0] : span[1]].strip()


def update_changelog(changelog: str, *, version: ModuleVersion, released_on: date) -> str | None:
    """Move the Unreleased notes under a new ``## [version] - date`` section.

    Returns None when there is no Unreleased header. A changelog that
    already has the version section and an empty Unreleased section is
    returned unchanged.
    """
    span = _unreleased_span(changelog)
    if span is None:
        return None

    notes = changelog[span[0] : span[1]].strip()
    if not notes:
        return changelog

    newline = newline_of(changelog)
    section = (
        f"{newline}{newline}## [{version}] - {released_on.isoformat()}"
        f"{newline}{newline}{notes}{newline}{newline}"
    )
    return changelog[: span[0]] + section + changelog[span[1] :].lstrip("\r\n")


# -----------------------------------------------------------------------------
# Module manifest (.psd1)
# -----------------------------------------------------------------------------


def manifest_version(manifest: str) -> str | None:
    m = _MANIFEST_VERSION_RE.search(manifest)
    return m.group(2) if m is not None else None


def set_manifest_version(manifest: str, version: ModuleVersion) -> str | None:
    if _MANIFEST_VERSION_RE.search(manifest) is None:
        return None
    return _MANIFEST_VERSION_RE.sub(lambda m: f"{m.group(1)}'{version}'", manifest, count=1)


def manifest_release_notes(manifest: str) -> str | None:
    """ReleaseNotes value with doubled single quotes collapsed."""
    m = _MANIFEST_NOTES_RE.search(manifest)
    if m is None:
        return None
    return m.group(2).replace("''", "'")


def set_manifest_release_notes(manifest: str, notes: str) -> str | None:
    if _MANIFEST_NOTES_RE.search(manifest) is None:
        return None
    escaped = notes.replace("'", "''")
    return _MANIFEST_NOTES_RE.sub(lambda m: f"{m.group(1)}'{escaped}'", manifest, count=1)


# -----------------------------------------------------------------------------
# CI build config
# -----------------------------------------------------------------------------


def build_config_version(build_config: str) -> str | None:
    m = _BUILD_VERSION_RE.search(build_config)
    return m.group(2) if m is not None else None


def set_build_config_version(build_config: str, version: ModuleVersion) -> str | None:
    """Rewrite ``version: X.Y.Z.{build}`` to the new major.minor.build."""
    if _BUILD_VERSION_RE.search(build_config) is None:
        return None
    return _BUILD_VERSION_RE.sub(
        lambda m: f"{m.group(1)}{version.build_config_prefix}{m.group(3)}",
        build_config,
        count=1,
    )


# -----------------------------------------------------------------------------
# File access
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ArtifactText:
    """Decoded artifact plus the bytes it was read from.

    Decoding never translates newlines, and ``encode`` puts back a UTF-8 BOM
    when the file had one, so untouched lines round-trip byte for byte.
    """

    path: Path
    text: str
    raw: bytes
    bom: bool

    def encode(self, text: str) -> bytes:
        return (codecs.BOM_UTF8 if self.bom else b"") + text.encode("utf-8")


@dataclass(frozen=True, slots=True)
class ArtifactEdit:
    original: ArtifactText
    text: str

    @property
    def path(self) -> Path:
        return self.original.path

    @property
    def changed(self) -> bool:
        return self.text != self.original.text


def read_artifact(path: Path) -> Result[ArtifactText, ArtifactError]:
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return Err(ArtifactError(path=path, detail="file not found"))
    except OSError as e:
        return Err(ArtifactError(path=path, detail=f"read failed: {e}"))
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        return Err(ArtifactError(path=path, detail=f"not UTF-8: {e}"))
    return Ok(ArtifactText(path=path, text=text, raw=raw, bom=raw.startswith(codecs.BOM_UTF8)))


def read_unreleased_notes(changelog: Path) -> Result[str, ArtifactError]:
    artifact = read_artifact(changelog)
    if isinstance(artifact, Err):
        return artifact
    return Ok(unreleased_notes(artifact.value.text))


def write_artifacts(edits: Iterable[ArtifactEdit]) -> Result[list[Path], ArtifactError]:
    """Write every changed edit; on a failed write put earlier files back.

    Returns:
        The files whose content changed.
    """
    written: list[ArtifactEdit] = []
    for edit in edits:
        if not edit.changed:
            continue
        try:
            atomic_write_bytes(edit.path, edit.original.encode(edit.text))
        except OSError as e:
            return Err(_rolled_back(edit.path, f"write failed: {e}", written))
        written.append(edit)
    return Ok([edit.path for edit in written])


def _rolled_back(path: Path, detail: str, written: list[ArtifactEdit]) -> ArtifactError:
    not_restored: list[str] = []
    for edit in reversed(written):
        try:
            atomic_write_bytes(edit.path, edit.original.raw)
        except OSError:
            not_restored.append(edit.path.name)
    if not_restored:
        detail = f"{detail}; could not restore {', '.join(not_restored)}"
    return ArtifactError(path=path, detail=detail)


def plan_release_artifacts(
    *,
    paths: ArtifactPaths,
    version: ModuleVersion,
    release_notes: str | None,
    released_on: date,
) -> Result[list[ArtifactEdit], ArtifactError]:
    """New changelog, manifest and build config texts, nothing written.

    With ``release_notes`` None only version fields change.
    """
    changelog = read_artifact(paths.changelog)
    if isinstance(changelog, Err):
        return changelog
    manifest = read_artifact(paths.manifest)
    if isinstance(manifest, Err):
        return manifest
    build_config = read_artifact(paths.build_config)
    if isinstance(build_config, Err):
        return build_config

    new_manifest = set_manifest_version(manifest.value.text, version)
    if new_manifest is None:
        return Err(ArtifactError(path=paths.manifest, detail="no ModuleVersion = '...' field"))

    new_changelog = changelog.value.text
    if release_notes is not None:
        updated = update_changelog(new_changelog, version=version, released_on=released_on)
        if updated is None:
            return Err(ArtifactError(path=paths.changelog, detail="no Unreleased section header"))
        new_changelog = updated

        with_notes = set_manifest_release_notes(new_manifest, release_notes)
        if with_notes is None:
            return Err(ArtifactError(path=paths.manifest, detail="no ReleaseNotes = '...' field"))
        new_manifest = with_notes

    new_build_config = set_build_config_version(build_config.value.text, version)
    if new_build_config is None:
        return Err(
            ArtifactError(path=paths.build_config, detail="no 'version: X.Y.Z.{build}' line")
        )

    return Ok(
        [
            ArtifactEdit(original=changelog.value, text=new_changelog),
            ArtifactEdit(original=manifest.value, text=new_manifest),
            ArtifactEdit(original=build_config.value, text=new_build_config),
        ]
    )


def apply_release_artifacts(
    *,
    paths: ArtifactPaths,
    version: ModuleVersion,
    release_notes: str | None,
    released_on: date,
) -> Result[list[Path], ArtifactError]:
    """Update changelog, manifest and build config together.

    Every new text is computed before anything is written, so a missing or
    malformed file leaves all three untouched. A failed write restores the
    files already written.

    Returns:
        The files whose content changed.
    """
    edits = plan_release_artifacts(
        paths=paths, version=version, release_notes=release_notes, released_on=released_on
    )
    if isinstance(edits, Err):
        return edits
    return write_artifacts(edits.value)
