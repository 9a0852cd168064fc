from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from dotrel.core.result import Err, Ok, Result
from dotrel.git.repository import GitError, Repository
from dotrel.output.console import ConsoleProtocol, Style
from dotrel.services.release import gh
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.model import PublishedRelease, RepoCommit


class VcsClient(Protocol):
    """Source repository and release hosting, as seen by the release cycle."""

    def list_tags(self) -> Result[list[str], ReleaseError]: ...

    def head_commit(self) -> Result[str, ReleaseError]: ...

    def commits_since(self, tag: str | None) -> Result[list[RepoCommit], ReleaseError]: ...

    def create_tag(self, name: str, commit: str) -> Result[None, ReleaseError]:
        """Create `name` at `commit`; Err(kind="duplicate_tag") if it already exists."""
        ...

    def push(self, ref: str) -> Result[None, ReleaseError]: ...

    def get_release(self, tag: str) -> Result[PublishedRelease | None, ReleaseError]: ...

    def create_release(
        self, tag: str, notes: str, artifacts: Sequence[Path]
    ) -> Result[str, ReleaseError]:
        """Publish a release for `tag` with `artifacts` attached; returns its URL."""
        ...


def _vcs_error(e: GitError, message: str) -> ReleaseError:
    return ReleaseError(kind="vcs_failed", message=message, hint=e.message or None)


class GitHubVcs:
    """VcsClient backed by a local git checkout and the GitHub CLI.

    With `dry_run`, mutating commands are printed instead of executed.
    """

    def __init__(
        self,
        *,
        repo_root: Path,
        repo_slug: str,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._git = Repository(repo_root)
        self._root = repo_root
        self._slug = repo_slug
        self._console = console
        self._dry_run = dry_run

    def list_tags(self) -> Result[list[str], ReleaseError]:
        tags = self._git.list_tags()
        if isinstance(tags, Err):
            return Err(_vcs_error(tags.error, "failed to list tags"))
        return Ok(tags.value)

    def head_commit(self) -> Result[str, ReleaseError]:
        sha = self._git.head_sha()
        if isinstance(sha, Err):
            return Err(_vcs_error(sha.error, "failed to resolve HEAD"))
        return Ok(sha.value)

    def commits_since(self, tag: str | None) -> Result[list[RepoCommit], ReleaseError]:
        log = self._git.log_since(tag)
        if isinstance(log, Err):
            return Err(_vcs_error(log.error, f"failed to read history since {tag or 'root'}"))
        return Ok([RepoCommit(sha=e.sha, message=e.message, date_utc=e.date) for e in log.value])

    def create_tag(self, name: str, commit: str) -> Result[None, ReleaseError]:
        if self._git.tag_exists(name):
            return Err(
                ReleaseError(
                    kind="duplicate_tag",
                    message=f"tag already exists: {name}",
                    hint="Releases are immutable; pick a new version.",
                )
            )

        self._console.print(f"git tag {name} {commit[:8]}", Style.DIM)
        if self._dry_run:
            return Ok(None)

        created = self._git.create_tag(name, commit)
        if isinstance(created, Err):
            return Err(_vcs_error(created.error, f"failed to create tag {name}"))
        return Ok(None)

    def push(self, ref: str) -> Result[None, ReleaseError]:
        self._console.print(f"git push {self._git.remote} {ref}", Style.DIM)
        if self._dry_run:
            return Ok(None)

        pushed = self._git.push_ref(ref)
        if isinstance(pushed, Err):
            return Err(_vcs_error(pushed.error, f"failed to push {ref}"))
        return Ok(None)

    def get_release(self, tag: str) -> Result[PublishedRelease | None, ReleaseError]:
        if self._dry_run:
            return Ok(None)
        return gh.view_release(cwd=self._root, repo=self._slug, tag=tag)

    def create_release(
        self, tag: str, notes: str, artifacts: Sequence[Path]
    ) -> Result[str, ReleaseError]:
        self._console.print(
            f"gh release create {tag} --repo {self._slug} ({len(artifacts)} assets)", Style.DIM
        )
        if self._dry_run:
            return Ok(f"https://github.com/{self._slug}/releases/tag/{tag} (dry-run)")

        return gh.create_release(
            cwd=self._root,
            repo=self._slug,
            tag=tag,
            title=tag,
            notes=notes,
            files=list(artifacts),
        )
