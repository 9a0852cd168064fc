from __future__ import annotations

import os
from pathlib import Path

import typer

from dotrel.cli.commands.release_common import (
    exit_for_error,
    exit_release,
    print_cycle_summary,
)
from dotrel.cli.context import CLIContext, build_context
from dotrel.core.errors import ErrorCode
from dotrel.core.result import Err
from dotrel.output.console import Style
from dotrel.platform.targets import SUPPORTED_PLATFORMS
from dotrel.services.release.build import BuildSettings
from dotrel.services.release.compiler import CargoCompiler
from dotrel.services.release.formula_repo import GitHubFormulaRepo
from dotrel.services.release.gh import ensure_gh_auth, ensure_gh_available
from dotrel.services.release.naming import archive_name
from dotrel.services.release.pipeline import PipelineDeps, run_release_pipeline
from dotrel.services.release.resolver import normalize_override, resolve_version
from dotrel.services.release.semver import parse_triple
from dotrel.services.release.trigger import (
    MANUAL,
    TriggerEvent,
    evaluate_trigger,
    read_event_file,
)
from dotrel.services.release.vcs import GitHubVcs

release_app = typer.Typer(add_completion=False, no_args_is_help=True)

_CONFIG_OPTION = typer.Option(None, "--config", help="Config file (default: <repo>/dotrel.toml)")


def _build_settings(ctx: CLIContext) -> BuildSettings:
    cfg = ctx.config
    return BuildSettings(
        binary=cfg.project.binary,
        source_root=ctx.repo_root,
        work_root=ctx.repo_root / cfg.build.work_dir,
        out_dir=ctx.repo_root / cfg.build.out_dir,
        manifest=cfg.project.manifest,
        placeholder_version=cfg.project.placeholder_version,
    )


def _load_trigger(event_file: Path | None, event_name: str | None) -> TriggerEvent:
    if event_file is None:
        return MANUAL

    name = event_name or os.environ.get("GITHUB_EVENT_NAME") or None
    event = read_event_file(event_file, event_name=name)
    if isinstance(event, Err):
        exit_for_error(event.error)
    return event.value


@release_app.command("next")
def next_cmd(
    version: str | None = typer.Option(None, "--version", help="Explicit version override"),
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Print the next release version (no side effects)."""
    ctx = build_context(config_path=config)
    vcs = GitHubVcs(
        repo_root=ctx.repo_root,
        repo_slug=ctx.config.project.repo,
        console=ctx.console,
    )

    resolved = resolve_version(vcs=vcs, override=version)
    if isinstance(resolved, Err):
        exit_for_error(resolved.error.at_stage("resolving"))

    r = resolved.value
    ctx.console.print(f"previous: {r.previous_tag or '(none)'}  source: {r.source}", Style.DIM)
    typer.echo(str(r.version))


@release_app.command("run")
def run_cmd(
    version: str | None = typer.Option(None, "--version", help="Explicit version override"),
    event_file: Path | None = typer.Option(
        None,
        "--event-file",
        help="GitHub event payload (e.g. $GITHUB_EVENT_PATH)",
    ),
    event_name: str | None = typer.Option(
        None,
        "--event-name",
        help="GitHub event name (default: $GITHUB_EVENT_NAME, else guessed)",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print git/gh mutations instead"),
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Run a full release cycle: resolve, tag, build, release, update formula."""
    ctx = build_context(config_path=config)
    console = ctx.console

    trigger = _load_trigger(event_file, event_name)
    triggered = evaluate_trigger(trigger, label=ctx.config.trigger.label)
    if isinstance(triggered, Err):
        console.info(triggered.error.message)
        exit_for_error(triggered.error)

    override = normalize_override(version) or normalize_override(triggered.value)

    if not dry_run:
        for check in (ensure_gh_available(), ensure_gh_auth(cwd=ctx.repo_root)):
            if isinstance(check, Err):
                exit_for_error(check.error)

    deps = PipelineDeps(
        vcs=GitHubVcs(
            repo_root=ctx.repo_root,
            repo_slug=ctx.config.project.repo,
            console=console,
            dry_run=dry_run,
        ),
        compiler=CargoCompiler(binary=ctx.config.project.binary, console=console),
        formula_repo=GitHubFormulaRepo(
            config=ctx.config.formula,
            checkout_dir=ctx.repo_root / ctx.config.build.work_dir / "formula",
            console=console,
            dry_run=dry_run,
        ),
        console=console,
    )

    cycle = run_release_pipeline(
        config=ctx.config,
        settings=_build_settings(ctx),
        deps=deps,
        override=override,
    )
    print_cycle_summary(console=console, cycle=cycle)

    if not cycle.succeeded:
        if cycle.error is None:
            exit_release("release cycle ended without a release", code=ErrorCode.IO_ERROR)
        exit_for_error(cycle.error)


@release_app.command("platforms")
def platforms_cmd(
    version: str | None = typer.Option(None, "--version", help="Version used in archive names"),
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """List supported build targets and the archive each would produce."""
    ctx = build_context(config_path=config)
    cfg = ctx.config

    shown = version or cfg.project.placeholder_version
    v = parse_triple(shown.strip())
    if v is None:
        exit_release(f"invalid version: {shown!r}", code=ErrorCode.USER_ERROR)

    for pid, platform in SUPPORTED_PLATFORMS.items():
        if platform in cfg.build.platforms:
            name = archive_name(cfg.project.binary, v, platform)
            ctx.console.print(f"{pid:14} {platform.rust_triple:28} {name}")
        else:
            ctx.console.print(f"{pid:14} {platform.rust_triple:28} (not configured)", Style.DIM)
