"""Deterministic names derived from (binary, version, platform).

Every stage recomputes names from these functions instead of passing paths
around, so the aggregator can find a build's archive from the platform alone.
"""

from __future__ import annotations

import re

from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.semver import Version

ARCHIVE_SUFFIX = ".tar.gz"


def archive_name(binary: str, version: Version, platform: TargetPlatform) -> str:
    """`<binary>-<version>-<os>-<arch>.tar.gz`, e.g. dotty-2.5.0-darwin-arm64.tar.gz."""
    return f"{binary}-{version}-{platform.os}-{platform.arch}{ARCHIVE_SUFFIX}"


def tag_name(version: Version) -> str:
    return str(version)


def download_url(repo: str, version: Version, filename: str) -> str:
    return f"https://github.com/{repo}/releases/download/{tag_name(version)}/{filename}"


def formula_branch(binary: str, version: Version) -> str:
    return f"release/{binary}-{version}"


def formula_class_name(binary: str) -> str:
    """Homebrew class name: "dotty" -> "Dotty", "my-tool" -> "MyTool"."""
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", binary) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts)
