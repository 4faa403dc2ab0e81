from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

from psr.core.result import Err, Ok, Result
from psr.platform.files import atomic_write_text
from psr.services.release.errors import ArtifactError

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def _matched_files(root: Path, patterns: Iterable[str], exclude: Path) -> list[Path]:
    found: set[Path] = set()
    for pattern in patterns:
        for p in root.glob(pattern):
            if p.is_file() and p != exclude and ".git" not in p.relative_to(root).parts:
                found.add(p)
    return sorted(found, key=lambda p: p.relative_to(root).as_posix())


def render_file_hash_markdown(rows: Iterable[tuple[str, str]]) -> str:
    lines = [
        "# File Hashes",
        "",
        "| File | SHA256 |",
        "| --- | --- |",
    ]
    for rel, digest in rows:
        lines.append(f"| {rel} | {digest.upper()} |")
    return "\n".join(lines) + "\n"


def write_file_hash_markdown(
    *, root: Path, patterns: Iterable[str], out: Path
) -> Result[bool, ArtifactError]:
    """Regenerate the hash table for module files.

    Returns:
        Ok(True) if the document changed.
    """
    try:
        rows = [
            (p.relative_to(root).as_posix(), sha256_file(p))
            for p in _matched_files(root, patterns, out)
        ]
    except OSError as e:
        return Err(ArtifactError(path=out, detail=f"hashing failed: {e}"))

    rendered = render_file_hash_markdown(rows)
    try:
        if out.exists() and out.read_text(encoding="utf-8") == rendered:
            return Ok(False)
        atomic_write_text(out, rendered)
    except (OSError, UnicodeDecodeError) as e:
        return Err(ArtifactError(path=out, detail=f"write failed: {e}"))
    return Ok(True)
