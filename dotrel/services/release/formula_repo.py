"""Formula repository collaborator (e.g. a Homebrew tap).

`GitHubFormulaRepo` keeps a local clone of the tap, resets a release branch
from the base branch, commits the rendered formula, pushes, then opens the
pull request with `gh`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from dotrel.core.config import FormulaConfig
from dotrel.core.result import Err, Ok, Result
from dotrel.git.repository import GitError, Repository
from dotrel.output.console import ConsoleProtocol, Style
from dotrel.platform.files import atomic_write_text
from dotrel.platform.process import run as run_process
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.pr_orchestration import create_pull_request, enable_auto_merge
from dotrel.services.release.timeouts import GH_CLONE_TIMEOUT_SECONDS


class FormulaRepo(Protocol):
    def publish_formula(
        self, branch: str, path: str, content: str, message: str
    ) -> Result[str, ReleaseError]:
        """Commit `content` at `path` on `branch` and push it; returns the commit sha."""
        ...

    def open_pull_request(
        self, branch: str, commit: str, title: str, body: str, auto_merge: bool
    ) -> Result[str, ReleaseError]:
        """Open a PR for `branch`; returns its URL."""
        ...


def _formula_error(message: str, hint: str | None = None) -> ReleaseError:
    return ReleaseError(kind="formula_update_failed", message=message, hint=hint)


def _git_failed(e: GitError) -> ReleaseError:
    return _formula_error(f"git {e.command} failed in formula repo", e.message or None)


class GitHubFormulaRepo:
    def __init__(
        self,
        *,
        config: FormulaConfig,
        checkout_dir: Path,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._config = config
        self._dir = checkout_dir
        self._console = console
        self._dry_run = dry_run

    def _ensure_clone(self) -> Result[Repository, ReleaseError]:
        repo = Repository(self._dir)
        if repo.exists():
            return Ok(repo)

        slug = self._config.repo
        self._console.print(f"gh repo clone {slug} {self._dir}", Style.DIM)
        if self._dry_run:
            return Ok(repo)

        try:
            self._dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(_formula_error(f"cannot prepare formula checkout {self._dir}: {e}"))
        result = run_process(
            ["gh", "repo", "clone", slug, str(self._dir)],
            cwd=self._dir.parent,
            timeout=GH_CLONE_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(
                _formula_error(
                    f"failed to clone formula repo {slug}",
                    result.error.stderr.strip() or None,
                )
            )
        return Ok(repo)

    def publish_formula(
        self, branch: str, path: str, content: str, message: str
    ) -> Result[str, ReleaseError]:
        cloned = self._ensure_clone()
        if isinstance(cloned, Err):
            return cloned
        repo = cloned.value
        base = self._config.base_branch

        self._console.print(f"git checkout {base} && git pull --ff-only", Style.DIM)
        self._console.print(f"git checkout -B {branch}", Style.DIM)
        self._console.print(f"git commit -m {message!r} -- {path}", Style.DIM)
        self._console.print(f"git push --force {repo.remote} {branch}", Style.DIM)
        if self._dry_run:
            return Ok("0" * 40)

        if not repo.is_clean():
            return Err(
                _formula_error(
                    f"formula repo checkout is dirty: {self._dir}",
                    "Commit or discard local changes there, then retry.",
                )
            )

        for step in (
            lambda: repo.checkout(base),
            lambda: repo.pull_ff(base),
            lambda: repo.checkout(branch, create=True),
        ):
            done = step()
            if isinstance(done, Err):
                return Err(_git_failed(done.error))

        try:
            atomic_write_text(self._dir / path, content)
        except OSError as e:
            return Err(_formula_error(f"failed to write {path}: {e}"))

        commit = repo.commit_paths([path], message)
        if isinstance(commit, Err):
            return Err(_git_failed(commit.error))

        pushed = repo.push_ref(branch, force=True)
        if isinstance(pushed, Err):
            return Err(_git_failed(pushed.error))
        return Ok(commit.value)

    def open_pull_request(
        self, branch: str, commit: str, title: str, body: str, auto_merge: bool
    ) -> Result[str, ReleaseError]:
        cwd = self._dir if self._dir.is_dir() else Path.cwd()
        self._console.print(f"pull request for {branch} @ {commit[:8]}", Style.DIM)

        url = create_pull_request(
            cwd=cwd,
            repo_slug=self._config.repo,
            base_branch=self._config.base_branch,
            branch=branch,
            title=title,
            body=body,
            console=self._console,
            dry_run=self._dry_run,
        )
        if isinstance(url, Err) or not auto_merge:
            return url

        merged = enable_auto_merge(
            cwd=cwd,
            repo_slug=self._config.repo,
            pr_url=url.value,
            console=self._console,
            dry_run=self._dry_run,
        )
        if isinstance(merged, Err):
            return merged
        return url
