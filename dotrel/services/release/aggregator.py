"""Release aggregation: the join point after the build matrix.

A release is only created from a complete artifact set: one archive per
configured platform, each found on disk under its computed name.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol
from dotrel.platform.files import sha256_file
from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.build_errors import describe_build_error
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.model import Artifact, BuildOutcome, Release, Tag
from dotrel.services.release.naming import archive_name
from dotrel.services.release.semver import Version
from dotrel.services.release.vcs import VcsClient


def collect_artifacts(
    *,
    binary: str,
    version: Version,
    platforms: Sequence[TargetPlatform],
    outcomes: Sequence[BuildOutcome],
    out_dir: Path,
) -> Result[tuple[Artifact, ...], ReleaseError]:
    """Turn build outcomes into artifacts, or report every offending platform."""
    problems: list[str] = []
    counts = Counter(o.platform for o in outcomes)

    for platform, n in counts.items():
        if platform not in platforms:
            problems.append(f"{platform}: unexpected platform")
        elif n > 1:
            problems.append(f"{platform}: reported {n} times")

    by_platform = {o.platform: o for o in outcomes}
    artifacts: list[Artifact] = []
    for platform in platforms:
        outcome = by_platform.get(platform)
        if outcome is None:
            problems.append(f"{platform}: no build outcome")
            continue
        if outcome.error is not None:
            problems.append(f"{platform}: {describe_build_error(outcome.error)}")
            continue
        if counts[platform] > 1:
            continue

        filename = archive_name(binary, version, platform)
        path = out_dir / filename
        if not path.is_file():
            problems.append(f"{platform}: archive not found: {filename}")
            continue

        try:
            artifacts.append(
                Artifact(
                    platform=platform,
                    filename=filename,
                    path=path,
                    sha256=sha256_file(path),
                    size=path.stat().st_size,
                )
            )
        except OSError as e:
            problems.append(f"{platform}: cannot read {filename}: {e}")

    if problems:
        return Err(
            ReleaseError(
                kind="incomplete_artifact_set",
                message=(
                    f"incomplete artifact set: {len(artifacts)} of {len(platforms)} "
                    "platform archive(s) usable"
                ),
                hint="; ".join(problems),
            )
        )
    return Ok(tuple(artifacts))


def publish_release(
    *,
    vcs: VcsClient,
    tag: Tag,
    version: Version,
    artifacts: Sequence[Artifact],
    notes: str,
    console: ConsoleProtocol,
) -> Result[Release, ReleaseError]:
    """Create the release for `tag`; an existing release is never touched."""
    existing = vcs.get_release(tag.name)
    if isinstance(existing, Err):
        return existing
    if existing.value is not None:
        found = existing.value
        assets = ", ".join(found.asset_names) or "no assets"
        hint = f"{found.url} ({assets})" if found.url else assets
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"release already exists for {tag.name}",
                hint=hint,
            )
        )

    created = vcs.create_release(tag.name, notes, [a.path for a in artifacts])
    if isinstance(created, Err):
        return Err(replace(created.error, kind="publish_failed"))

    console.success(f"released {tag.name}: {created.value}")
    return Ok(
        Release(
            version=version,
            tag=tag,
            artifacts=tuple(artifacts),
            notes=notes,
            url=created.value,
        )
    )
