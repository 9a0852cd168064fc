"""Next-version resolution.

The next version is either an explicit override or inferred from
conventional-commit prefixes since the latest version tag:

- `type!:` subject or a `BREAKING CHANGE:` footer -> major
- `feat:` -> minor
- `fix:` -> patch
- anything else -> no increment

A non-blank override always takes precedence over inference, whichever
trigger started the run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dotrel.core.result import Err, Ok, Result
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.model import RepoCommit
from dotrel.services.release.semver import (
    ZERO,
    ReleaseBump,
    Version,
    latest_version,
    parse_triple,
)
from dotrel.services.release.vcs import VcsClient

_SUBJECT_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\([^)]*\))?(?P<breaking>!)?:\s*\S")
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

_BUMP_RANK: dict[ReleaseBump, int] = {"patch": 1, "minor": 2, "major": 3}


@dataclass(frozen=True, slots=True)
class ResolvedVersion:
    version: Version
    previous_tag: str | None
    source: str  # "override" | "inferred"


def classify_commit(message: str) -> ReleaseBump | None:
    """Increment implied by one commit message, if any."""
    if _BREAKING_FOOTER_RE.search(message):
        return "major"

    subject = message.strip().splitlines()[0] if message.strip() else ""
    m = _SUBJECT_RE.match(subject)
    if m is None:
        return None
    if m.group("breaking"):
        return "major"

    match m.group("type").lower():
        case "feat":
            return "minor"
        case "fix":
            return "patch"
        case _:
            return None


def infer_bump(commits: list[RepoCommit]) -> ReleaseBump | None:
    best: ReleaseBump | None = None
    for c in commits:
        bump = classify_commit(c.message)
        if bump is not None and (best is None or _BUMP_RANK[bump] > _BUMP_RANK[best]):
            best = bump
    return best


def normalize_override(raw: str | None) -> str | None:
    if raw is None:
        return None
    s = raw.strip()
    return s or None


def _error(message: str, hint: str | None = None) -> ReleaseError:
    return ReleaseError(kind="version_resolution", message=message, hint=hint)


def validate_override(override: str, *, tags: list[str]) -> Result[Version, ReleaseError]:
    version = parse_triple(override)
    if version is None:
        hint = "Expected MAJOR.MINOR.PATCH"
        if override[:1] in {"v", "V"}:
            hint += " without a leading 'v'"
        return Err(_error(f"invalid version override: {override!r}", hint))

    if override in tags:
        return Err(
            ReleaseError(
                kind="duplicate_tag",
                message=f"tag already exists: {override}",
                hint="This version was already released; nothing to do.",
            )
        )

    latest = latest_version(tags)
    if latest is not None and not version > latest[0]:
        return Err(
            _error(
                f"version override {version} must be greater than latest tag {latest[1]}",
                "Pick a higher version or omit the override.",
            )
        )
    return Ok(version)


def resolve_next_version(
    *,
    tags: list[str],
    commits: list[RepoCommit],
    override: str | None,
) -> Result[ResolvedVersion, ReleaseError]:
    """Pure resolution from a tag snapshot and the commits since the latest tag."""
    latest = latest_version(tags)
    previous_tag = latest[1] if latest is not None else None

    requested = normalize_override(override)
    if requested is not None:
        validated = validate_override(requested, tags=tags)
        if isinstance(validated, Err):
            return validated
        return Ok(ResolvedVersion(validated.value, previous_tag, "override"))

    if not commits:
        since = previous_tag or "the first commit"
        return Err(_error(f"no commits since {since}", "Nothing to release."))

    bump = infer_bump(commits)
    if bump is None:
        return Err(
            _error(
                f"cannot infer next version from {len(commits)} commit(s)",
                "Use feat:/fix:/BREAKING CHANGE commits, or pass an explicit version.",
            )
        )

    base = latest[0] if latest is not None else ZERO
    return Ok(ResolvedVersion(base.bump(bump), previous_tag, "inferred"))


def resolve_version(
    *, vcs: VcsClient, override: str | None
) -> Result[ResolvedVersion, ReleaseError]:
    """Read tags and history fresh from the repository, then resolve."""
    tags = vcs.list_tags()
    if isinstance(tags, Err):
        return tags

    latest = latest_version(tags.value)
    commits: list[RepoCommit] = []
    if normalize_override(override) is None:
        history = vcs.commits_since(latest[1] if latest is not None else None)
        if isinstance(history, Err):
            return history
        commits = history.value

    return resolve_next_version(tags=tags.value, commits=commits, override=override)
