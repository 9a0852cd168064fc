"""One build task: (version, platform) -> packaged archive.

Each task works in its own copy of the source tree, so stamping the
manifest never races with a sibling task, and writes a single archive
whose name is derived from (binary, version, platform) alone.
"""

from __future__ import annotations

import gzip
import io
import re
import shutil
import tarfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol
from dotrel.platform.files import atomic_write_bytes, atomic_write_text
from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.build_errors import (
    BuildError,
    ManifestStampFailed,
    PackageFailed,
    SourceCopyFailed,
    build_failure,
)
from dotrel.services.release.compiler import Compiler
from dotrel.services.release.model import BuildOutcome
from dotrel.services.release.naming import archive_name
from dotrel.services.release.semver import Version

_ALWAYS_SKIP = frozenset({".git", "target"})
_ARCHIVE_MODE = 0o755


@dataclass(frozen=True, slots=True)
class BuildSettings:
    """Everything a build task needs besides the platform."""

    binary: str
    source_root: Path
    work_root: Path
    out_dir: Path
    manifest: str = "Cargo.toml"
    placeholder_version: str = "0.0.0"

    def work_dir(self, version: Version, platform: TargetPlatform) -> Path:
        return self.work_root / str(version) / platform.id

    def archive_path(self, version: Version, platform: TargetPlatform) -> Path:
        return self.out_dir / archive_name(self.binary, version, platform)


def _copy_ignore(excluded: set[Path]) -> Callable[[str, list[str]], set[str]]:
    def ignore(directory: str, names: list[str]) -> set[str]:
        base = Path(directory)
        return {n for n in names if n in _ALWAYS_SKIP or (base / n).resolve() in excluded}

    return ignore


def copy_sources(*, settings: BuildSettings, dest: Path) -> Result[Path, BuildError]:
    """Fresh copy of the source tree, minus VCS data, build output and our own dirs."""
    excluded = {settings.out_dir.resolve(), settings.work_root.resolve()}
    try:
        if dest.exists():
            shutil.rmtree(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(settings.source_root, dest, ignore=_copy_ignore(excluded), symlinks=True)
    except (OSError, shutil.Error) as e:
        return Err(SourceCopyFailed(source=settings.source_root, reason=str(e)))
    return Ok(dest)


def stamp_manifest(
    *, manifest: Path, version: Version, placeholder: str = "0.0.0"
) -> Result[None, BuildError]:
    """Replace the first `version = "<placeholder>"` line with the release version."""
    try:
        text = manifest.read_text(encoding="utf-8")
    except OSError as e:
        return Err(ManifestStampFailed(manifest=manifest, reason=str(e)))

    pattern = re.compile(rf'(?m)^(version\s*=\s*)"{re.escape(placeholder)}"')
    stamped, count = pattern.subn(rf'\g<1>"{version}"', text, count=1)
    if count == 0:
        return Err(
            ManifestStampFailed(
                manifest=manifest,
                reason=f'no `version = "{placeholder}"` line',
            )
        )

    try:
        atomic_write_text(manifest, stamped)
    except OSError as e:
        return Err(ManifestStampFailed(manifest=manifest, reason=str(e)))
    return Ok(None)


def package_binary(*, binary: Path, member_name: str, archive: Path) -> Result[Path, BuildError]:
    """Write a reproducible tar.gz holding `binary` as its only member.

    Timestamps, ownership and mode are fixed so the same binary always
    produces the same archive bytes (and therefore the same checksum).
    """
    buf = io.BytesIO()
    try:
        info = tarfile.TarInfo(name=member_name)
        info.size = binary.stat().st_size
        info.mode = _ARCHIVE_MODE
        info.mtime = 0
        info.uid = info.gid = 0
        info.uname = info.gname = ""

        with gzip.GzipFile(filename="", mode="wb", fileobj=buf, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.USTAR_FORMAT) as tar:
                with binary.open("rb") as handle:
                    tar.addfile(info, handle)

        atomic_write_bytes(archive, buf.getvalue())
    except (OSError, tarfile.TarError) as e:
        return Err(PackageFailed(archive=archive, reason=str(e)))
    return Ok(archive)


def run_build_task(
    *,
    settings: BuildSettings,
    version: Version,
    platform: TargetPlatform,
    compiler: Compiler,
    console: ConsoleProtocol,
) -> BuildOutcome:
    def failed(error: BuildError) -> BuildOutcome:
        console.error(build_failure(platform.id, error).pretty())
        return BuildOutcome(platform=platform, error=error)

    source = copy_sources(settings=settings, dest=settings.work_dir(version, platform))
    if isinstance(source, Err):
        return failed(source.error)

    stamped = stamp_manifest(
        manifest=source.value / settings.manifest,
        version=version,
        placeholder=settings.placeholder_version,
    )
    if isinstance(stamped, Err):
        return failed(stamped.error)

    built = compiler.build(source=source.value, platform=platform, version=version)
    if isinstance(built, Err):
        return failed(built.error)

    archive = package_binary(
        binary=built.value,
        member_name=settings.binary,
        archive=settings.archive_path(version, platform),
    )
    if isinstance(archive, Err):
        return failed(archive.error)

    console.success(f"[{platform}] {archive.value.name}")
    return BuildOutcome(platform=platform, archive=archive.value)
