"""Git repository abstraction.

Single-repo git operations needed by a release cycle: reading HEAD, local and
remote tags, the commit log since a tag, creating and pushing tags, and the
branch/commit/push sequence used for the formula repository.
All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/dotty"))

    match repo.list_tags():
        case Ok(tags):
            print(", ".join(tags))
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dotrel.core.result import Err, Ok, Result
from dotrel.platform.process import ProcessError
from dotrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

# Separators for `git log --format`: unit (field) and record.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

__all__ = [
    "GitError",
    "LogEntry",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One commit from `git log`, full message included."""

    sha: str
    date: str
    message: str


class Repository:
    """Operations on one local git checkout.

    Attributes:
        path: Path to the repository root
        remote: Remote name used for ls-remote/push
    """

    def __init__(self, path: Path, *, remote: str = "origin") -> None:
        self.path = path
        self.remote = remote

    def exists(self) -> bool:
        """Check if this is a git work tree (.git dir or worktree file)."""
        return (self.path / ".git").exists()

    def is_clean(self) -> bool:
        """True if the working tree has no changes; False if undeterminable."""
        result = self._run(["status", "--porcelain"])
        match result:
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def head_sha(self) -> Result[str, GitError]:
        result = self._run(["rev-parse", "HEAD"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse", e, "cannot resolve HEAD"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def local_tags(self) -> Result[list[str], GitError]:
        result = self._run(["tag", "--list"])
        match result:
            case Err(e):
                return Err(self._error("tag --list", e, "git tag --list failed"))
            case Ok(stdout):
                return Ok([ln.strip() for ln in stdout.splitlines() if ln.strip()])

    def remote_tags(self) -> Result[list[str], GitError]:
        """Tags published on the remote, read live with ls-remote."""
        result = self._run(["ls-remote", "--tags", self.remote])
        match result:
            case Err(e):
                return Err(self._error("ls-remote", e, "git ls-remote failed"))
            case Ok(stdout):
                return Ok(self._parse_ls_remote_tags(stdout))

    def list_tags(self) -> Result[list[str], GitError]:
        """Union of local and remote tags, sorted by name."""
        local = self.local_tags()
        if isinstance(local, Err):
            return local
        remote = self.remote_tags()
        if isinstance(remote, Err):
            return remote
        return Ok(sorted(set(local.value) | set(remote.value)))

    def tag_exists(self, name: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{name}"])
        return isinstance(result, Ok)

    def create_tag(self, name: str, commit: str) -> Result[None, GitError]:
        """Create a lightweight tag; never moves an existing one."""
        result = self._run(["tag", name, commit])
        match result:
            case Err(e):
                return Err(self._error("tag", e, f"failed to create tag {name}"))
            case Ok(_):
                return Ok(None)

    def push_ref(self, ref: str, *, force: bool = False) -> Result[None, GitError]:
        flags = ["--force"] if force else []
        result = self._run(["push", *flags, self.remote, ref])
        match result:
            case Err(e):
                return Err(self._error("push", e, f"failed to push {ref}"))
            case Ok(_):
                return Ok(None)

    def log_since(self, tag: str | None) -> Result[list[LogEntry], GitError]:
        """Commits reachable from HEAD but not from `tag` (all commits if None), newest first."""
        rev = f"{tag}..HEAD" if tag else "HEAD"
        fmt = "%H%x1f%cI%x1f%B%x1e"
        result = self._run(["log", f"--format={fmt}", rev])
        match result:
            case Err(e):
                return Err(self._error("log", e, f"git log {rev} failed"))
            case Ok(stdout):
                return Ok(self._parse_log(stdout))

    def checkout(self, branch: str, *, create: bool = False) -> Result[None, GitError]:
        # -B: a branch left over from an interrupted run is reset, not reused.
        args = ["checkout", "-B", branch] if create else ["checkout", branch]
        result = self._run(args)
        match result:
            case Err(e):
                return Err(self._error("checkout", e, f"failed to checkout {branch}"))
            case Ok(_):
                return Ok(None)

    def pull_ff(self, branch: str) -> Result[None, GitError]:
        result = self._run(["pull", "--ff-only", self.remote, branch])
        match result:
            case Err(e):
                return Err(self._error("pull --ff-only", e, "pull failed"))
            case Ok(_):
                return Ok(None)

    def commit_paths(self, paths: list[str], message: str) -> Result[str, GitError]:
        """Stage `paths`, commit, and return the new commit sha."""
        add = self._run(["add", "-A", "--", *paths])
        if isinstance(add, Err):
            return Err(self._error("add", add.error, "git add failed"))

        commit = self._run(["commit", "-m", message])
        if isinstance(commit, Err):
            return Err(
                self._error(
                    "commit",
                    commit.error,
                    "git commit failed (configure git user.name/user.email?)",
                )
            )
        return self.head_sha()

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    @staticmethod
    def _error(command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or fallback,
            returncode=e.returncode,
        )

    @staticmethod
    def _parse_ls_remote_tags(output: str) -> list[str]:
        """Parse `<sha>\\trefs/tags/<name>` lines, folding peeled `^{}` entries."""
        tags: set[str] = set()
        for line in output.splitlines():
            parts = line.split("\t", 1)
            if len(parts) != 2:
                continue
            ref = parts[1].strip()
            if not ref.startswith("refs/tags/"):
                continue
            name = ref.removeprefix("refs/tags/").removesuffix("^{}")
            if name:
                tags.add(name)
        return sorted(tags)

    @staticmethod
    def _parse_log(output: str) -> list[LogEntry]:
        entries: list[LogEntry] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record.strip():
                continue
            fields = record.split(_FIELD_SEP, 2)
            if len(fields) != 3:
                continue
            sha, date, message = fields
            entries.append(LogEntry(sha=sha.strip(), date=date.strip(), message=message.strip()))
        return entries
