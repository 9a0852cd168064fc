from __future__ import annotations

from pathlib import Path

import pytest

from dotrel.core.result import Err, Ok
from dotrel.git.repository import GitError, LogEntry, Repository
from dotrel.output.console import MockConsole
from dotrel.services.release.vcs import GitHubVcs


def _vcs(tmp_path: Path, *, dry_run: bool = False) -> tuple[GitHubVcs, MockConsole]:
    console = MockConsole()
    return (
        GitHubVcs(repo_root=tmp_path, repo_slug="example/dotty", console=console, dry_run=dry_run),
        console,
    )


def test_existing_tag_is_duplicate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(Repository, "tag_exists", lambda self, name: True)
    vcs, _ = _vcs(tmp_path)

    result = vcs.create_tag("1.0.0", "a" * 40)

    assert isinstance(result, Err)
    assert result.error.kind == "duplicate_tag"


def test_dry_run_mutations_only_print(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def boom(self: Repository, *args: object, **kwargs: object) -> object:
        raise AssertionError("git mutation in dry-run")

    monkeypatch.setattr(Repository, "tag_exists", lambda self, name: False)
    monkeypatch.setattr(Repository, "create_tag", boom)
    monkeypatch.setattr(Repository, "push_ref", boom)
    vcs, console = _vcs(tmp_path, dry_run=True)

    assert vcs.create_tag("1.0.0", "abcdef0123") == Ok(None)
    assert vcs.push("refs/tags/1.0.0") == Ok(None)
    assert vcs.get_release("1.0.0") == Ok(None)
    url = vcs.create_release("1.0.0", "notes", [])
    assert isinstance(url, Ok)
    assert console.messages[:2] == ["git tag 1.0.0 abcdef01", "git push origin refs/tags/1.0.0"]


def test_git_errors_become_vcs_failed(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        Repository,
        "log_since",
        lambda self, tag: Err(GitError(command="log", message="bad revision")),
    )
    vcs, _ = _vcs(tmp_path)

    result = vcs.commits_since("9.9.9")

    assert isinstance(result, Err)
    assert result.error.kind == "vcs_failed"
    assert result.error.hint == "bad revision"


def test_commits_since_maps_log_entries(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    entries = [LogEntry(sha="abc", date="2026-01-01T00:00:00+00:00", message="fix: x")]
    monkeypatch.setattr(Repository, "log_since", lambda self, tag: Ok(entries))
    vcs, _ = _vcs(tmp_path)

    result = vcs.commits_since(None)

    assert isinstance(result, Ok)
    assert [(c.sha, c.message) for c in result.value] == [("abc", "fix: x")]
