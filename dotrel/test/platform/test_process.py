"""Tests for dotrel.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from dotrel.core.result import Err, Ok
from dotrel.platform.process import ProcessError, run


class TestProcessError:
    def test_str_truncates_long_commands(self) -> None:
        error = ProcessError(
            command=("cargo", "build", "--release", "--target", "x86_64-apple-darwin"),
            returncode=101,
            stdout="",
            stderr="",
        )
        assert str(error) == "cargo build --release ... failed (exit 101)"

    def test_detail_prefers_last_stderr_line(self) -> None:
        error = ProcessError(
            command=("git", "push"),
            returncode=1,
            stdout="ignored",
            stderr="To github.com:x/y\n ! [rejected] 1.0.0 (already exists)\n",
        )
        assert error.detail() == "! [rejected] 1.0.0 (already exists)"

    def test_detail_falls_back_to_str(self) -> None:
        error = ProcessError(command=("gh",), returncode=4, stdout="", stderr="  ")
        assert error.detail() == "gh failed (exit 4)"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert result.value.strip() == "hello"

    def test_failure_carries_exit_code_and_stderr(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert result.error.stderr == "bad"

    def test_missing_executable(self, tmp_path: Path) -> None:
        result = run(["dotrel-no-such-binary-12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert result.error.stderr

    def test_timeout(self, tmp_path: Path) -> None:
        cmd = [sys.executable, "-c", "import time; time.sleep(5)"]
        result = run(cmd, cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "timed out" in result.error.stderr

    def test_uses_cwd(self, tmp_path: Path) -> None:
        (tmp_path / "marker.txt").write_text("x")

        result = run([sys.executable, "-c", "import os; print(os.listdir('.'))"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "marker.txt" in result.value
