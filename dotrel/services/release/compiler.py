"""Compiler collaborator.

The build task only needs "turn this source tree into a binary for this
platform". `CargoCompiler` does that with `cargo build --release --target`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol, Style
from dotrel.platform.process import run as run_process
from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.build_errors import BinaryMissing, BuildError, CompileFailed
from dotrel.services.release.semver import Version
from dotrel.services.release.timeouts import COMPILE_TIMEOUT_SECONDS


class Compiler(Protocol):
    def build(
        self, *, source: Path, platform: TargetPlatform, version: Version
    ) -> Result[Path, BuildError]:
        """Compile `source` for `platform`; returns the path of the built binary."""
        ...


class CargoCompiler:
    def __init__(
        self,
        *,
        binary: str,
        console: ConsoleProtocol,
        cargo: str = "cargo",
        timeout: float = COMPILE_TIMEOUT_SECONDS,
    ) -> None:
        self._binary = binary
        self._console = console
        self._cargo = cargo
        self._timeout = timeout

    def command(self, platform: TargetPlatform) -> list[str]:
        return [self._cargo, "build", "--release", "--target", platform.rust_triple]

    def binary_path(self, source: Path, platform: TargetPlatform) -> Path:
        return source / "target" / platform.rust_triple / "release" / self._binary

    def build(
        self, *, source: Path, platform: TargetPlatform, version: Version
    ) -> Result[Path, BuildError]:
        cmd = self.command(platform)
        self._console.print(f"[{platform}] {' '.join(cmd)}", Style.DIM)

        result = run_process(cmd, cwd=source, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(CompileFailed(returncode=e.returncode, detail=e.detail()))

        binary = self.binary_path(source, platform)
        if not binary.is_file():
            return Err(BinaryMissing(path=binary))
        return Ok(binary)
