"""The one place dotrel starts subprocesses.

git, gh and cargo are all reached through `run`. Output is captured and
every way a command can fail (non-zero exit, timeout, executable not found)
comes back as a `ProcessError` value rather than an exception:

    match run(["git", "rev-parse", "HEAD"], cwd=repo_root):
        case Ok(stdout):
            sha = stdout.strip()
        case Err(error):
            console.error(error.detail())
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from dotrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

# Reported as the exit code when the process never produced one.
NO_EXIT_CODE = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that did not exit cleanly.

    `returncode` is NO_EXIT_CODE when the command could not start or was
    killed on timeout; `stderr` then carries the reason.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"

    def detail(self) -> str:
        """Last line of stderr (or stdout), else the summary."""
        text = self.stderr.strip() or self.stdout.strip()
        return text.splitlines()[-1] if text else str(self)


def _failed(
    cmd: list[str], returncode: int, *, stdout: str = "", stderr: str = ""
) -> Err[ProcessError]:
    return Err(
        ProcessError(command=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr)
    )


def run(cmd: list[str], cwd: Path, *, timeout: float | None = None) -> Result[str, ProcessError]:
    """Run `cmd` in `cwd`; Ok(stdout) on exit 0."""
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return _failed(
            cmd, NO_EXIT_CODE, stdout=partial, stderr=f"Command timed out after {timeout}s"
        )
    except OSError as e:
        return _failed(cmd, NO_EXIT_CODE, stderr=str(e))

    if proc.returncode != 0:
        return _failed(cmd, proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    return Ok(proc.stdout)
