from __future__ import annotations

import re
from dataclasses import dataclass

from psr.core.result import Err, Ok, Result
from psr.services.release.errors import VersionError

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
# Tags may carry a suffix (4.2.0.1-PSGallery) or a leading "v".
_TAG_RE = re.compile(r"^v?(\d+\.\d+\.\d+\.\d+)(?:-.*)?$")


@dataclass(frozen=True, slots=True, order=True)
class ModuleVersion:
    """Four-component module version; ordering is structural (tuple order)."""

    major: int
    minor: int
    build: int
    revision: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.build}.{self.revision}"

    @property
    def build_config_prefix(self) -> str:
        """Version stem for CI configs: ``major.minor.build``."""
        return f"{self.major}.{self.minor}.{self.build}"


def parse_version(text: str) -> ModuleVersion | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return ModuleVersion(int(m.group(1)), int(m.group(2)), int(m.group(3)), int(m.group(4)))


def version_from_tag(tag: str) -> ModuleVersion | None:
    m = _TAG_RE.match(tag.strip())
    if m is None:
        return None
    return parse_version(m.group(1))


def require_version(text: str) -> Result[ModuleVersion, VersionError]:
    parsed = parse_version(text)
    if parsed is None:
        return Err(
            VersionError(
                version=text,
                published=None,
                detail="expected four numeric components (MAJOR.MINOR.BUILD.REVISION)",
            )
        )
    return Ok(parsed)


def validate_version(
    version: ModuleVersion, *, published: ModuleVersion | None
) -> Result[ModuleVersion, VersionError]:
    """Accept ``version`` only if strictly greater than ``published``.

    Nothing published yet (None) accepts any version.
    """
    if published is not None and not version > published:
        return Err(VersionError(version=str(version), published=str(published)))
    return Ok(version)
