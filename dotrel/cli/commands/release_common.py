from __future__ import annotations

from typing import NoReturn

import typer

from dotrel.core.errors import ErrorCode
from dotrel.output.console import ConsoleProtocol, Style
from dotrel.services.release.build_errors import build_failure
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.pipeline import ReleaseCycle

_USER_KINDS = frozenset({"version_resolution", "duplicate_tag", "not_triggered", "invalid_input"})
_ENV_KINDS = frozenset({"gh_missing", "gh_auth_required"})
_BUILD_KINDS = frozenset({"build_failed", "incomplete_artifact_set"})
_NETWORK_KINDS = frozenset({"vcs_failed", "publish_failed", "formula_update_failed"})


def exit_release(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def release_error_code(kind: str) -> ErrorCode:
    if kind in _USER_KINDS:
        return ErrorCode.USER_ERROR
    if kind in _ENV_KINDS:
        return ErrorCode.ENV_ERROR
    if kind in _BUILD_KINDS:
        return ErrorCode.BUILD_ERROR
    if kind in _NETWORK_KINDS:
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.IO_ERROR


def exit_for_error(error: ReleaseError) -> NoReturn:
    exit_release(error.pretty(), code=release_error_code(error.kind))


def print_cycle_summary(*, console: ConsoleProtocol, cycle: ReleaseCycle) -> None:
    console.header("Summary")

    if cycle.resolved is not None:
        console.print(f"version: {cycle.resolved.version} ({cycle.resolved.source})")
    if cycle.tag is not None:
        console.print(f"tag: {cycle.tag.name} @ {cycle.tag.commit[:8]}")

    for o in cycle.outcomes:
        if o.ok and o.archive is not None:
            console.print(f"  {o.platform}: {o.archive.name}", Style.SUCCESS)
        elif o.error is not None:
            console.print(f"  {build_failure(o.platform.id, o.error).pretty()}", Style.ERROR)

    if cycle.release is not None:
        console.success(f"release: {cycle.release.url}")
    if cycle.formula_pr is not None:
        console.success(f"formula PR: {cycle.formula_pr}")
    for w in cycle.warnings:
        console.warning(w.pretty())

    if cycle.error is not None:
        console.error(f"failed during {cycle.failed_stage}: {cycle.error.message}")
