"""Build target platforms.

A target is an (operating system, architecture) pair the release pipeline
knows how to cross-compile for. The set is fixed: adding a target means
adding an entry here, not in configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "TargetPlatform",
    "SUPPORTED_PLATFORMS",
    "DEFAULT_PLATFORM_IDS",
    "get_platform",
]


@dataclass(frozen=True, slots=True)
class TargetPlatform:
    """A supported build target.

    Attributes:
        os: Release-facing OS name ("darwin", "linux").
        arch: Release-facing architecture name ("arm64", "amd64").
        rust_triple: Target triple handed to the compiler.
    """

    os: str
    arch: str
    rust_triple: str

    @property
    def id(self) -> str:
        """Identifier used in archive names and config, e.g. "darwin-arm64"."""
        return f"{self.os}-{self.arch}"

    @property
    def is_macos(self) -> bool:
        return self.os == "darwin"

    @property
    def is_arm(self) -> bool:
        return self.arch == "arm64"

    def __str__(self) -> str:
        return self.id


SUPPORTED_PLATFORMS: dict[str, TargetPlatform] = {
    p.id: p
    for p in (
        TargetPlatform(os="darwin", arch="arm64", rust_triple="aarch64-apple-darwin"),
        TargetPlatform(os="darwin", arch="amd64", rust_triple="x86_64-apple-darwin"),
        TargetPlatform(os="linux", arch="amd64", rust_triple="x86_64-unknown-linux-gnu"),
        TargetPlatform(os="linux", arch="arm64", rust_triple="aarch64-unknown-linux-gnu"),
    )
}

DEFAULT_PLATFORM_IDS: tuple[str, ...] = ("darwin-arm64", "darwin-amd64", "linux-amd64")


def get_platform(platform_id: str) -> TargetPlatform | None:
    return SUPPORTED_PLATFORMS.get(platform_id.strip().lower())
