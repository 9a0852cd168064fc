"""Homebrew formula generation and propagation.

One formula revision per release: every artifact contributes a download
URL and checksum, grouped into `on_macos` / `on_linux` blocks and selected
by CPU inside each block.
"""

from __future__ import annotations

from dataclasses import replace

from dotrel.core.config import FormulaConfig, ProjectConfig
from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.formula_repo import FormulaRepo
from dotrel.services.release.model import Formula, FormulaEntry, Release
from dotrel.services.release.naming import download_url, formula_branch, formula_class_name

_OS_BLOCKS = (("darwin", "on_macos"), ("linux", "on_linux"))


def _ruby_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("#{", "\\#{")
    return f'"{escaped}"'


def build_formula(*, project: ProjectConfig, release: Release) -> Formula:
    entries = tuple(
        FormulaEntry(
            platform=a.platform,
            url=download_url(project.repo, release.version, a.filename),
            sha256=a.sha256,
        )
        for a in release.artifacts
    )
    return Formula(
        class_name=formula_class_name(project.binary),
        binary=project.binary,
        version=release.version,
        description=project.description or f"{project.binary} command-line tool",
        homepage=project.homepage_url,
        license=project.license,
        entries=entries,
    )


def render_formula(formula: Formula) -> str:
    lines = [
        f"class {formula.class_name} < Formula",
        f"  desc {_ruby_str(formula.description)}",
        f"  homepage {_ruby_str(formula.homepage)}",
        f"  version {_ruby_str(str(formula.version))}",
    ]
    if formula.license:
        lines.append(f"  license {_ruby_str(formula.license)}")

    for os_name, block in _OS_BLOCKS:
        entries = [e for e in formula.entries if e.platform.os == os_name]
        if not entries:
            continue
        lines.append("")
        lines.append(f"  {block} do")
        for e in entries:
            cpu = "arm?" if e.platform.is_arm else "intel?"
            lines.append(f"    if Hardware::CPU.{cpu}")
            lines.append(f"      url {_ruby_str(e.url)}")
            lines.append(f"      sha256 {_ruby_str(e.sha256)}")
            lines.append("    end")
        lines.append("  end")

    binary = formula.binary
    lines += [
        "",
        "  def install",
        f"    bin.install {_ruby_str(binary)}",
        "  end",
        "",
        "  test do",
        f'    system "#{{bin}}/{binary}", "--version"',
        "  end",
        "end",
    ]
    return "\n".join(lines) + "\n"


def update_formula(
    *,
    release: Release,
    project: ProjectConfig,
    config: FormulaConfig,
    repo: FormulaRepo,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    """Publish the formula for `release` and open its PR; returns the PR URL.

    Every failure is reported as `formula_update_failed`; the release itself
    is already published and is not touched here.
    """
    formula = build_formula(project=project, release=release)
    content = render_formula(formula)
    branch = formula_branch(project.binary, release.version)
    message = f"{project.binary} {release.version}"

    commit = repo.publish_formula(branch, config.path, content, message)
    if isinstance(commit, Err):
        return Err(replace(commit.error, kind="formula_update_failed"))

    body = f"Update {project.binary} to {release.version}.\n\nRelease: {release.url}\n"
    url = repo.open_pull_request(branch, commit.value, message, body, config.auto_merge)
    if isinstance(url, Err):
        return Err(replace(url.error, kind="formula_update_failed"))

    console.success(f"formula PR: {url.value}")
    return Ok(url.value)
