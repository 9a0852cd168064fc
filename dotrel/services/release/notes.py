from __future__ import annotations

from collections.abc import Sequence

from dotrel.services.release.model import Artifact, RepoCommit
from dotrel.services.release.naming import tag_name
from dotrel.services.release.semver import Version


def _commit_url(repo: str, sha: str) -> str:
    return f"https://github.com/{repo}/commit/{sha}"


def _changelog_url(repo: str, previous_tag: str | None, tag: str) -> str:
    if previous_tag is None:
        return f"https://github.com/{repo}/commits/{tag}"
    return f"https://github.com/{repo}/compare/{previous_tag}...{tag}"


def render_release_notes(
    *,
    repo: str,
    binary: str,
    version: Version,
    previous_tag: str | None,
    commits: Sequence[RepoCommit],
    artifacts: Sequence[Artifact],
) -> str:
    tag = tag_name(version)
    lines: list[str] = [f"# {binary} {tag}", ""]

    lines.append("## What's Changed")
    if commits:
        for c in commits:
            lines.append(f"- {c.subject} ([{c.short_sha}]({_commit_url(repo, c.sha)}))")
    else:
        lines.append("- No changes recorded.")
    lines.append("")

    lines.append("## Assets")
    lines.append("| Platform | File | SHA-256 |")
    lines.append("|---|---|---|")
    for a in artifacts:
        lines.append(f"| {a.platform} | `{a.filename}` | `{a.sha256}` |")
    lines.append("")

    lines.append(f"**Full Changelog**: {_changelog_url(repo, previous_tag, tag)}")
    return "\n".join(lines) + "\n"
