"""The release cycle as a state machine.

    resolving -> tagging -> building -> aggregating -> releasing
              -> updating_formula -> done

Any stage error moves the cycle to `failed`, recording the stage. The
formula stage is the exception: its failure is kept as a warning and the
cycle still ends in `done`, because the release is already public.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from dotrel.core.config import Config
from dotrel.core.result import Err, Ok, Result
from dotrel.output.console import ConsoleProtocol, Style
from dotrel.platform.targets import TargetPlatform
from dotrel.services.release.aggregator import collect_artifacts, publish_release
from dotrel.services.release.build import BuildSettings, run_build_task
from dotrel.services.release.compiler import Compiler
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.formula import update_formula
from dotrel.services.release.formula_repo import FormulaRepo
from dotrel.services.release.fsm import StepOutcome, advance, finish, run_state_machine
from dotrel.services.release.matrix import run_build_matrix
from dotrel.services.release.model import Artifact, BuildOutcome, Release, Tag
from dotrel.services.release.notes import render_release_notes
from dotrel.services.release.resolver import ResolvedVersion, resolve_version
from dotrel.services.release.tagging import publish_tag
from dotrel.services.release.vcs import VcsClient

ReleaseStage = Literal[
    "resolving",
    "tagging",
    "building",
    "aggregating",
    "releasing",
    "updating_formula",
    "done",
    "failed",
]


@dataclass(frozen=True, slots=True)
class PipelineDeps:
    vcs: VcsClient
    compiler: Compiler
    formula_repo: FormulaRepo
    console: ConsoleProtocol


@dataclass(frozen=True, slots=True)
class ReleaseCycle:
    stage: ReleaseStage = "resolving"
    override: str | None = None
    resolved: ResolvedVersion | None = None
    tag: Tag | None = None
    outcomes: tuple[BuildOutcome, ...] = ()
    artifacts: tuple[Artifact, ...] = ()
    release: Release | None = None
    formula_pr: str | None = None
    warnings: tuple[ReleaseError, ...] = ()
    error: ReleaseError | None = None
    failed_stage: str | None = None

    @property
    def succeeded(self) -> bool:
        """A cycle succeeds exactly when a release was published."""
        return self.stage == "done" and self.release is not None


def _require[T](value: T | None, what: str) -> Result[T, ReleaseError]:
    if value is None:
        return Err(ReleaseError(kind="invalid_input", message=f"release cycle has no {what}"))
    return Ok(value)


class _Stages:
    def __init__(self, *, config: Config, settings: BuildSettings, deps: PipelineDeps) -> None:
        self._config = config
        self._settings = settings
        self._deps = deps

    @property
    def _console(self) -> ConsoleProtocol:
        return self._deps.console

    def resolving(self, s: ReleaseCycle) -> Result[StepOutcome[ReleaseCycle], ReleaseError]:
        resolved = resolve_version(vcs=self._deps.vcs, override=s.override)
        if isinstance(resolved, Err):
            return resolved

        r = resolved.value
        since = r.previous_tag or "no previous tag"
        self._console.info(f"next version: {r.version} ({r.source}, since {since})")
        return Ok(advance(replace(s, stage="tagging", resolved=r)))

    def tagging(self, s: ReleaseCycle) -> Result[StepOutcome[ReleaseCycle], ReleaseError]:
        resolved = _require(s.resolved, "resolved version")
        if isinstance(resolved, Err):
            return resolved

        tag = publish_tag(vcs=self._deps.vcs, version=resolved.value.version, console=self._console)
        if isinstance(tag, Err):
            return tag
        return Ok(advance(replace(s, stage="building", tag=tag.value)))

    def building(self, s: ReleaseCycle) -> Result[StepOutcome[ReleaseCycle], ReleaseError]:
        resolved = _require(s.resolved, "resolved version")
        if isinstance(resolved, Err):
            return resolved
        version = resolved.value.version
        platforms = self._config.build.platforms

        # Stale archives for this version must not be mistaken for fresh output.
        for p in platforms:
            stale = self._settings.archive_path(version, p)
            try:
                stale.unlink(missing_ok=True)
            except OSError as e:
                return Err(
                    ReleaseError(
                        kind="build_failed",
                        message=f"cannot remove stale archive {stale}: {e}",
                        hint="Clear the output directory and re-run.",
                        platform=p.id,
                    )
                )

        def task(platform: TargetPlatform) -> BuildOutcome:
            return run_build_task(
                settings=self._settings,
                version=version,
                platform=platform,
                compiler=self._deps.compiler,
                console=self._console,
            )

        outcomes = run_build_matrix(
            platforms=platforms,
            run_task=task,
            max_workers=self._config.build.max_parallel,
        )
        ok = sum(1 for o in outcomes if o.ok)
        self._console.print(f"{ok}/{len(outcomes)} builds succeeded", Style.DIM)
        return Ok(advance(replace(s, stage="aggregating", outcomes=tuple(outcomes))))

    def aggregating(self, s: ReleaseCycle) -> Result[StepOutcome[ReleaseCycle], ReleaseError]:
        resolved = _require(s.resolved, "resolved version")
        if isinstance(resolved, Err):
            return resolved

        artifacts = collect_artifacts(
            binary=self._config.project.binary,
            version=resolved.value.version,
            platforms=self._config.build.platforms,
            outcomes=s.outcomes,
            out_dir=self._settings.out_dir,
        )
        if isinstance(artifacts, Err):
            return artifacts
        return Ok(advance(replace(s, stage="releasing", artifacts=artifacts.value)))

    def releasing(self, s: ReleaseCycle) -> Result[StepOutcome[ReleaseCycle], ReleaseError]:
        resolved = _require(s.resolved, "resolved version")
        if isinstance(resolved, Err):
            return resolved
        tag = _require(s.tag, "tag")
        if isinstance(tag, Err):
            return tag
        r = resolved.value

        commits = self._deps.vcs.commits_since(r.previous_tag)
        if isinstance(commits, Err):
            return commits

        notes = render_release_notes(
            repo=self._config.project.repo,
            binary=self._config.project.binary,
            version=r.version,
            previous_tag=r.previous_tag,
            commits=commits.value,
            artifacts=s.artifacts,
        )
        release = publish_release(
            vcs=self._deps.vcs,
            tag=tag.value,
            version=r.version,
            artifacts=s.artifacts,
            notes=notes,
            console=self._console,
        )
        if isinstance(release, Err):
            return release
        return Ok(advance(replace(s, stage="updating_formula", release=release.value)))

    def updating_formula(
        self, s: ReleaseCycle
    ) -> Result[StepOutcome[ReleaseCycle], ReleaseError]:
        release = _require(s.release, "release")
        if isinstance(release, Err):
            return release

        # The release is already public: nothing raised here may fail the cycle.
        try:
            pr = update_formula(
                release=release.value,
                project=self._config.project,
                config=self._config.formula,
                repo=self._deps.formula_repo,
                console=self._console,
            )
        except Exception as e:
            pr = Err(
                ReleaseError(
                    kind="formula_update_failed",
                    message=f"formula update crashed: {type(e).__name__}: {e}",
                )
            )
        if isinstance(pr, Err):
            warning = pr.error.at_stage("updating_formula")
            self._console.warning(warning.pretty())
            return Ok(finish(replace(s, stage="done", warnings=(*s.warnings, warning))))
        return Ok(finish(replace(s, stage="done", formula_pr=pr.value)))


def _fail(s: ReleaseCycle, step: str, error: ReleaseError) -> ReleaseCycle:
    return replace(s, stage="failed", failed_stage=step, error=error)


def run_release_pipeline(
    *,
    config: Config,
    settings: BuildSettings,
    deps: PipelineDeps,
    override: str | None = None,
) -> ReleaseCycle:
    """Run one release cycle to completion and return its terminal state."""
    stages = _Stages(config=config, settings=settings, deps=deps)
    handlers = {
        "resolving": stages.resolving,
        "tagging": stages.tagging,
        "building": stages.building,
        "aggregating": stages.aggregating,
        "releasing": stages.releasing,
        "updating_formula": stages.updating_formula,
    }

    def on_enter(step: str, _s: ReleaseCycle) -> None:
        deps.console.header(f"==> {step}")

    return run_state_machine(
        initial_state=ReleaseCycle(override=override),
        get_step=lambda s: s.stage,
        handlers=handlers,
        on_error=_fail,
        on_enter=on_enter,
    )
