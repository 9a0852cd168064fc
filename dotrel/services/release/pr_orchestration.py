from __future__ import annotations

from pathlib import Path

from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol, Style
from dotrel.platform.process import run as run_process
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.timeouts import GH_TIMEOUT_SECONDS


def _is_auto_merge_disabled(stderr: str | None) -> bool:
    if not stderr:
        return False
    return (
        "Auto merge is not allowed for this repository" in stderr
        or "enablePullRequestAutoMerge" in stderr
    )


def _pr_error(message: str, hint: str | None) -> ReleaseError:
    return ReleaseError(kind="formula_update_failed", message=message, hint=hint or None)


def create_pull_request(
    *,
    cwd: Path,
    repo_slug: str,
    base_branch: str,
    branch: str,
    title: str,
    body: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[str, ReleaseError]:
    """Open a PR from `branch` into `base_branch`; returns the PR URL."""
    cmd = [
        "gh",
        "pr",
        "create",
        "--repo",
        repo_slug,
        "--base",
        base_branch,
        "--head",
        branch,
        "--title",
        title,
        "--body",
        body,
    ]

    console.print(f"gh pr create --repo {repo_slug} --head {branch}", Style.DIM)
    if dry_run:
        return Ok(f"https://github.com/{repo_slug}/pull/0 (dry-run)")

    result = run_process(cmd, cwd=cwd, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            _pr_error(f"failed to create PR in {repo_slug}", result.error.stderr.strip())
        )

    url = result.value.strip().splitlines()[-1] if result.value.strip() else ""
    if not url.startswith("https://"):
        return Err(_pr_error("unexpected gh pr create output", url))
    return Ok(url)


def enable_auto_merge(
    *,
    cwd: Path,
    repo_slug: str,
    pr_url: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[None, ReleaseError]:
    """Ask GitHub to squash-merge the PR once its checks pass."""
    cmd = [
        "gh",
        "pr",
        "merge",
        pr_url,
        "--repo",
        repo_slug,
        "--auto",
        "--squash",
        "--delete-branch",
    ]
    console.print(f"gh pr merge {pr_url} --auto --squash", Style.DIM)
    if dry_run:
        return Ok(None)

    merged = run_process(cmd, cwd=cwd, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(merged, Err):
        e = merged.error
        if _is_auto_merge_disabled(e.stderr):
            return Err(
                _pr_error(
                    f"auto-merge is disabled for {repo_slug}",
                    f"Enable 'Allow auto-merge' in the repository settings, or merge {pr_url}",
                )
            )
        return Err(_pr_error(f"failed to enable auto-merge on {pr_url}", e.stderr.strip()))

    return Ok(None)
