from __future__ import annotations

import tarfile
from pathlib import Path

from release_fakes import (
    HEAD_SHA,
    FakeCompiler,
    FakeFormulaRepo,
    FakeVcs,
    commits,
    make_config,
)

from dotrel.core.config import Config
from dotrel.core.result import Ok, Result
from dotrel.output.console import MockConsole
from dotrel.services.release.build import BuildSettings
from dotrel.services.release.errors import ReleaseError
from dotrel.services.release.model import PublishedRelease
from dotrel.services.release.pipeline import PipelineDeps, ReleaseCycle, run_release_pipeline


def _settings(config: Config, source_root: Path, tmp_path: Path) -> BuildSettings:
    return BuildSettings(
        binary=config.project.binary,
        source_root=source_root,
        work_root=tmp_path / "work",
        out_dir=tmp_path / "out",
    )


def _run(
    *,
    config: Config,
    source_root: Path,
    tmp_path: Path,
    vcs: FakeVcs,
    compiler: FakeCompiler,
    formula: FakeFormulaRepo,
    console: MockConsole,
    override: str | None = None,
) -> ReleaseCycle:
    return run_release_pipeline(
        config=config,
        settings=_settings(config, source_root, tmp_path),
        deps=PipelineDeps(vcs=vcs, compiler=compiler, formula_repo=formula, console=console),
        override=override,
    )


def test_end_to_end_release_with_override(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    config = make_config()
    vcs = FakeVcs(tags=["2.4.1"], history=commits("fix: handle symlinks"))
    compiler = FakeCompiler()
    formula = FakeFormulaRepo()

    cycle = _run(
        config=config,
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=compiler,
        formula=formula,
        console=console,
        override="2.5.0",
    )

    assert cycle.succeeded
    assert cycle.stage == "done"
    assert cycle.error is None
    assert vcs.created_tags == [("2.5.0", HEAD_SHA)]
    assert vcs.pushed == ["refs/tags/2.5.0"]

    assert list(vcs.releases) == ["2.5.0"]
    assert sorted(vcs.releases["2.5.0"].asset_names) == [
        "dotty-2.5.0-darwin-amd64.tar.gz",
        "dotty-2.5.0-darwin-arm64.tar.gz",
        "dotty-2.5.0-linux-amd64.tar.gz",
    ]
    assert cycle.release is not None
    assert len(cycle.release.artifacts) == 3

    # Every task compiled against its own stamped manifest.
    assert compiler.stamped == {
        "darwin-arm64": "2.5.0",
        "darwin-amd64": "2.5.0",
        "linux-amd64": "2.5.0",
    }
    assert len(set(compiler.sources.values())) == 3
    assert 'version = "0.0.0"' in (source_root / "Cargo.toml").read_text(encoding="utf-8")

    assert len(formula.pull_requests) == 1
    pr = formula.pull_requests[0]
    assert pr["branch"] == "release/dotty-2.5.0"
    assert pr["auto_merge"] is True
    assert formula.commit_messages == ["dotty 2.5.0"]
    content = formula.files[("release/dotty-2.5.0", "Formula/dotty.rb")]
    assert "releases/download/2.5.0/dotty-2.5.0-darwin-arm64.tar.gz" in content
    assert cycle.formula_pr == pr["url"]


def test_end_to_end_archives_hold_the_binary(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    config = make_config()
    cycle = _run(
        config=config,
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=FakeVcs(tags=["2.4.1"], history=commits("feat: profiles")),
        compiler=FakeCompiler(),
        formula=FakeFormulaRepo(),
        console=console,
    )

    assert cycle.succeeded
    assert cycle.release is not None
    assert str(cycle.release.version) == "2.5.0"
    for artifact in cycle.release.artifacts:
        with tarfile.open(artifact.path, "r:gz") as tar:
            assert tar.getnames() == ["dotty"]
            member = tar.extractfile("dotty")
            assert member is not None
            assert member.read().decode().startswith(f"dotty 2.5.0 {artifact.platform.id}")


def test_rerun_with_same_version_is_duplicate_tag_and_creates_nothing(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    config = make_config()
    vcs = FakeVcs(tags=["2.4.1"], history=commits("fix: typo"))
    formula = FakeFormulaRepo()

    first = _run(
        config=config,
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=FakeCompiler(),
        formula=formula,
        console=console,
        override="2.5.0",
    )
    assert first.succeeded

    compiler = FakeCompiler()
    second = _run(
        config=config,
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=compiler,
        formula=formula,
        console=console,
        override="2.5.0",
    )

    assert not second.succeeded
    assert second.stage == "failed"
    assert second.error is not None
    assert second.error.kind == "duplicate_tag"
    assert second.failed_stage == "resolving"
    assert len(vcs.releases) == 1
    assert len(vcs.created_tags) == 1
    assert compiler.stamped == {}
    assert len(formula.pull_requests) == 1


def test_one_failed_platform_blocks_the_release(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    config = make_config()
    vcs = FakeVcs(tags=["1.0.0"], history=commits("feat: new"))
    compiler = FakeCompiler(fail=["darwin-amd64"])
    formula = FakeFormulaRepo()

    cycle = _run(
        config=config,
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=compiler,
        formula=formula,
        console=console,
    )

    assert not cycle.succeeded
    assert cycle.failed_stage == "aggregating"
    assert cycle.error is not None
    assert cycle.error.kind == "incomplete_artifact_set"
    assert "darwin-amd64" in (cycle.error.hint or "")
    assert vcs.releases == {}
    assert formula.pull_requests == []
    # Siblings still ran to completion.
    assert set(compiler.stamped) == {"darwin-arm64", "darwin-amd64", "linux-amd64"}
    assert len(cycle.outcomes) == 3
    assert [o.ok for o in cycle.outcomes] == [True, False, True]


def test_crashed_task_is_isolated(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=FakeVcs(history=commits("feat: first")),
        compiler=FakeCompiler(crash=["linux-amd64"]),
        formula=FakeFormulaRepo(),
        console=console,
    )

    assert cycle.error is not None
    assert cycle.error.kind == "incomplete_artifact_set"
    assert "linux-amd64" in (cycle.error.hint or "")
    assert "RuntimeError" in (cycle.error.hint or "")


def test_formula_failure_keeps_release_and_success(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    vcs = FakeVcs(tags=["0.9.0"], history=commits("fix: crash"))
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=FakeCompiler(),
        formula=FakeFormulaRepo(fail_publish=True),
        console=console,
    )

    assert cycle.succeeded
    assert cycle.stage == "done"
    assert cycle.release is not None
    assert list(vcs.releases) == ["0.9.1"]
    assert cycle.formula_pr is None
    assert len(cycle.warnings) == 1
    assert cycle.warnings[0].kind == "formula_update_failed"
    assert cycle.warnings[0].stage == "updating_formula"
    assert console.has_warning()


class _RaisingFormulaRepo(FakeFormulaRepo):
    def publish_formula(
        self, branch: str, path: str, content: str, message: str
    ) -> Result[str, ReleaseError]:
        raise OSError(13, "Permission denied", "/work/formula")


class _SnapshotFormulaRepo(FakeFormulaRepo):
    """Records the published release as the formula PR is attempted."""

    def __init__(self, vcs: FakeVcs) -> None:
        super().__init__(fail_pr=True)
        self.vcs = vcs
        self.seen: tuple[dict[str, PublishedRelease], dict[str, str]] | None = None

    def open_pull_request(
        self, branch: str, commit: str, title: str, body: str, auto_merge: bool
    ) -> Result[str, ReleaseError]:
        self.seen = (dict(self.vcs.releases), dict(self.vcs.release_notes))
        return super().open_pull_request(branch, commit, title, body, auto_merge)


def test_formula_exception_becomes_a_warning(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    vcs = FakeVcs(tags=["0.9.0"], history=commits("fix: crash"))
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=FakeCompiler(),
        formula=_RaisingFormulaRepo(),
        console=console,
    )

    assert cycle.succeeded
    assert cycle.error is None
    assert list(vcs.releases) == ["0.9.1"]
    assert len(cycle.warnings) == 1
    warning = cycle.warnings[0]
    assert warning.kind == "formula_update_failed"
    assert warning.stage == "updating_formula"
    assert "OSError" in warning.message
    assert console.has_warning()


def test_pr_failure_leaves_the_release_untouched(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    vcs = FakeVcs(tags=["0.9.0"], history=commits("fix: crash"))
    formula = _SnapshotFormulaRepo(vcs)
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=FakeCompiler(),
        formula=formula,
        console=console,
    )

    assert cycle.succeeded
    assert cycle.formula_pr is None
    assert [w.kind for w in cycle.warnings] == ["formula_update_failed"]

    assert formula.seen is not None
    releases, notes = formula.seen
    assert "0.9.1" in releases
    assert vcs.releases == releases
    assert vcs.release_notes == notes
    assert vcs.get_release("0.9.1") == Ok(releases["0.9.1"])


def test_stale_archive_that_cannot_be_removed_fails_building(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    stale = tmp_path / "out" / "dotty-0.1.0-linux-amd64.tar.gz"
    (stale / "leftover").mkdir(parents=True)
    vcs = FakeVcs(history=commits("feat: a"))
    compiler = FakeCompiler()
    cycle = _run(
        config=make_config(platforms=["linux-amd64"]),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=compiler,
        formula=FakeFormulaRepo(),
        console=console,
    )

    assert cycle.stage == "failed"
    assert cycle.failed_stage == "building"
    assert cycle.error is not None
    assert cycle.error.kind == "build_failed"
    assert cycle.error.platform == "linux-amd64"
    assert str(stale) in cycle.error.message
    assert compiler.stamped == {}
    assert vcs.releases == {}


def test_push_failure_stops_before_building(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    vcs = FakeVcs(history=commits("feat: x"), push_error="remote rejected")
    compiler = FakeCompiler()
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=compiler,
        formula=FakeFormulaRepo(),
        console=console,
    )

    assert cycle.failed_stage == "tagging"
    assert cycle.error is not None
    assert cycle.error.kind == "vcs_failed"
    assert "git tag -d 0.1.0" in (cycle.error.hint or "")
    assert compiler.stamped == {}
    assert vcs.releases == {}


def test_unresolvable_history_fails_in_resolving(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    vcs = FakeVcs(tags=["1.0.0"], history=commits("chore: deps", "docs: readme"))
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=FakeCompiler(),
        formula=FakeFormulaRepo(),
        console=console,
    )

    assert cycle.failed_stage == "resolving"
    assert cycle.error is not None
    assert cycle.error.kind == "version_resolution"
    assert vcs.created_tags == []


def test_existing_release_is_never_edited(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    vcs = FakeVcs(tags=["1.0.0"], history=commits("fix: a"), reject_release=True)
    cycle = _run(
        config=make_config(),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=vcs,
        compiler=FakeCompiler(),
        formula=FakeFormulaRepo(),
        console=console,
    )

    assert cycle.failed_stage == "releasing"
    assert cycle.error is not None
    assert cycle.error.kind == "publish_failed"
    assert vcs.releases == {}


def test_stage_banners_follow_the_cycle_order(
    source_root: Path, tmp_path: Path, console: MockConsole
) -> None:
    _run(
        config=make_config(platforms=["linux-amd64"]),
        source_root=source_root,
        tmp_path=tmp_path,
        vcs=FakeVcs(history=commits("feat: a")),
        compiler=FakeCompiler(),
        formula=FakeFormulaRepo(),
        console=console,
    )

    banners = [m.removeprefix("==> ") for m in console.messages if m.startswith("==> ")]
    assert banners == [
        "resolving",
        "tagging",
        "building",
        "aggregating",
        "releasing",
        "updating_formula",
    ]
