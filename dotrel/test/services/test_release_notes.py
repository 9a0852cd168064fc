from __future__ import annotations

from pathlib import Path

from release_fakes import commits

from dotrel.platform.targets import SUPPORTED_PLATFORMS
from dotrel.services.release.model import Artifact
from dotrel.services.release.notes import render_release_notes
from dotrel.services.release.semver import Version


def _artifact(pid: str) -> Artifact:
    name = f"dotty-2.5.0-{pid}.tar.gz"
    return Artifact(
        platform=SUPPORTED_PLATFORMS[pid],
        filename=name,
        path=Path(name),
        sha256="ab" * 32,
        size=10,
    )


def test_notes_list_commits_and_checksums() -> None:
    notes = render_release_notes(
        repo="example/dotty",
        binary="dotty",
        version=Version(2, 5, 0),
        previous_tag="2.4.1",
        commits=commits("feat: profiles\n\nlong body", "fix: symlink loop"),
        artifacts=[_artifact("darwin-arm64"), _artifact("linux-amd64")],
    )

    assert notes.startswith("# dotty 2.5.0\n")
    assert "- feat: profiles ([00aaaaaa](https://github.com/example/dotty/commit/" in notes
    assert "long body" not in notes
    assert f"| darwin-arm64 | `dotty-2.5.0-darwin-arm64.tar.gz` | `{'ab' * 32}` |" in notes
    assert "compare/2.4.1...2.5.0" in notes


def test_first_release_links_to_history() -> None:
    notes = render_release_notes(
        repo="example/dotty",
        binary="dotty",
        version=Version(0, 1, 0),
        previous_tag=None,
        commits=[],
        artifacts=[],
    )

    assert "- No changes recorded." in notes
    assert "https://github.com/example/dotty/commits/0.1.0" in notes
