from __future__ import annotations

import json
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path
from time import sleep

from dotrel.core.result import Err, Ok, Result
from dotrel.core.structured import as_obj_list, as_str_dict, get_str
from dotrel.platform.process import ProcessError
from dotrel.platform.process import run as run_process
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.model import PublishedRelease
from dotrel.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def _is_not_found(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    return "not found" in text or "http 404" in text


def run_gh_read(
    *,
    cwd: Path,
    cmd: list[str],
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ProcessError]:
    """Run an idempotent gh read, retrying transient failures.

    Non-transient failures come back as the raw ProcessError so callers can
    interpret them ("release not found" is an answer, not an error).
    """
    attempts = max(1, retry_attempts)
    result = run_process(cmd, cwd=cwd, timeout=timeout)
    for attempt in range(1, attempts):
        if isinstance(result, Ok) or not _is_transient_gh_error(result.error):
            break
        sleep(GH_READ_RETRY_DELAY_SECONDS * attempt)
        result = run_process(cmd, cwd=cwd, timeout=timeout)
    return result


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, cwd: Path) -> Result[None, ReleaseError]:
    result = run_process(["gh", "auth", "status"], cwd=cwd, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="gh auth required",
                hint="Run: gh auth login (or set GH_TOKEN)",
            )
        )
    return Ok(None)


def view_release(
    *, cwd: Path, repo: str, tag: str
) -> Result[PublishedRelease | None, ReleaseError]:
    """Look up the release for `tag`; Ok(None) if there is none."""
    result = run_gh_read(
        cwd=cwd,
        cmd=["gh", "release", "view", tag, "--repo", repo, "--json", "tagName,url,assets"],
    )
    if isinstance(result, Err):
        error = result.error
        if _is_not_found(error):
            return Ok(None)
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"failed to query release {tag}",
                hint=error.detail(),
            )
        )

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"invalid JSON from gh release view: {e}",
                hint=tag,
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(kind="publish_failed", message="unexpected gh release view payload")
        )

    names: list[str] = []
    for item in as_obj_list(data.get("assets")) or []:
        d = as_str_dict(item)
        if d is None:
            continue
        name = get_str(d, "name")
        if name is not None:
            names.append(name)

    return Ok(
        PublishedRelease(
            tag=get_str(data, "tagName") or tag,
            url=get_str(data, "url") or "",
            asset_names=tuple(names),
        )
    )


def create_release(
    *,
    cwd: Path,
    repo: str,
    tag: str,
    title: str,
    notes: str,
    files: Sequence[Path],
) -> Result[str, ReleaseError]:
    """Create a release for an already-pushed tag with `files` attached; returns its URL."""
    missing = [str(f) for f in files if not f.is_file()]
    if missing:
        return Err(
            ReleaseError(
                kind="publish_failed",
                message="release assets missing on disk",
                hint=", ".join(missing),
            )
        )

    with tempfile.TemporaryDirectory(prefix="dotrel-notes-") as tmp:
        notes_file = Path(tmp) / "notes.md"
        notes_file.write_text(notes, encoding="utf-8")
        cmd = [
            "gh",
            "release",
            "create",
            tag,
            "--repo",
            repo,
            "--verify-tag",
            "--title",
            title,
            "--notes-file",
            str(notes_file),
            *[str(f) for f in files],
        ]
        result = run_process(cmd, cwd=cwd, timeout=GH_UPLOAD_TIMEOUT_SECONDS)

    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"failed to create release {tag}",
                hint=result.error.detail(),
            )
        )

    url = result.value.strip().splitlines()[-1] if result.value.strip() else ""
    if not url.startswith("https://"):
        return Err(
            ReleaseError(
                kind="publish_failed",
                message="unexpected gh release create output",
                hint=url or None,
            )
        )
    return Ok(url)
