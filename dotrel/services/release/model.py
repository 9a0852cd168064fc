from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.build_errors import BuildError
from dotrel.services.release.semver import Version


@dataclass(frozen=True, slots=True)
class RepoCommit:
    sha: str
    message: str
    date_utc: str | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:8]

    @property
    def subject(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""


@dataclass(frozen=True, slots=True)
class Tag:
    name: str
    commit: str


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    """Terminal report of one build task."""

    platform: TargetPlatform
    archive: Path | None = None
    error: BuildError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.archive is not None


@dataclass(frozen=True, slots=True)
class Artifact:
    platform: TargetPlatform
    filename: str
    path: Path
    sha256: str
    size: int


@dataclass(frozen=True, slots=True)
class Release:
    """A published release: one artifact per configured platform."""

    version: Version
    tag: Tag
    artifacts: tuple[Artifact, ...]
    notes: str
    url: str


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    """A release as reported back by the hosting service."""

    tag: str
    url: str
    asset_names: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FormulaEntry:
    platform: TargetPlatform
    url: str
    sha256: str


@dataclass(frozen=True, slots=True)
class Formula:
    class_name: str
    binary: str
    version: Version
    description: str
    homepage: str
    license: str | None
    entries: tuple[FormulaEntry, ...]
