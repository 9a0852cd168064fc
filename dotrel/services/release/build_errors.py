from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dotrel.services.release.errors import ReleaseError


@dataclass(frozen=True, slots=True)
class SourceCopyFailed:
    source: Path
    reason: str


@dataclass(frozen=True, slots=True)
class ManifestStampFailed:
    manifest: Path
    reason: str


@dataclass(frozen=True, slots=True)
class CompileFailed:
    returncode: int
    detail: str


@dataclass(frozen=True, slots=True)
class BinaryMissing:
    path: Path


@dataclass(frozen=True, slots=True)
class PackageFailed:
    archive: Path
    reason: str


@dataclass(frozen=True, slots=True)
class TaskCrashed:
    reason: str


BuildError = (
    SourceCopyFailed
    | ManifestStampFailed
    | CompileFailed
    | BinaryMissing
    | PackageFailed
    | TaskCrashed
)


def describe_build_error(error: BuildError) -> str:
    match error:
        case SourceCopyFailed(source=source, reason=reason):
            return f"failed to prepare sources from {source}: {reason}"
        case ManifestStampFailed(manifest=manifest, reason=reason):
            return f"failed to stamp version into {manifest.name}: {reason}"
        case CompileFailed(returncode=rc, detail=detail):
            if not detail:
                return f"compile failed (exit {rc})"
            return f"compile failed (exit {rc}): {detail}"
        case BinaryMissing(path=path):
            return f"compiler produced no binary at {path}"
        case PackageFailed(archive=archive, reason=reason):
            return f"failed to package {archive.name}: {reason}"
        case TaskCrashed(reason=reason):
            return f"build task crashed: {reason}"


def build_failure(platform: str, error: BuildError) -> ReleaseError:
    """A per-platform build error as a `build_failed` ReleaseError."""
    return ReleaseError(
        kind="build_failed",
        message=describe_build_error(error),
        stage="building",
        platform=platform,
    )
