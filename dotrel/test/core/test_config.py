"""Tests for dotrel.core.config module."""

from __future__ import annotations

from pathlib import Path

from dotrel.core.config import config_from_dict, load_config
from dotrel.core.result import Err, Ok
from dotrel.platform.targets import DEFAULT_PLATFORM_IDS

MINIMAL = {
    "project": {"binary": "dotty", "repo": "someone/dotty"},
    "formula": {"repo": "someone/homebrew-tap"},
}


class TestConfigFromDict:
    def test_minimal_uses_defaults(self) -> None:
        result = config_from_dict(MINIMAL)

        assert isinstance(result, Ok)
        config = result.value
        assert tuple(p.id for p in config.build.platforms) == DEFAULT_PLATFORM_IDS
        assert config.build.max_parallel == len(DEFAULT_PLATFORM_IDS)
        assert config.build.out_dir == "out"
        assert config.formula.path == "Formula/dotty.rb"
        assert config.formula.base_branch == "main"
        assert config.formula.auto_merge is True
        assert config.trigger.label == "release"
        assert config.project.manifest == "Cargo.toml"
        assert config.project.homepage_url == "https://github.com/someone/dotty"

    def test_explicit_values(self) -> None:
        data = {
            **MINIMAL,
            "build": {"platforms": ["linux-amd64", "linux-arm64"], "max_parallel": 1},
            "formula": {"repo": "someone/tap", "path": "dotty.rb", "auto_merge": False},
            "trigger": {"label": "ship-it"},
        }

        result = config_from_dict(data)

        assert isinstance(result, Ok)
        config = result.value
        assert [p.id for p in config.build.platforms] == ["linux-amd64", "linux-arm64"]
        assert config.build.max_parallel == 1
        assert config.formula.path == "dotty.rb"
        assert config.formula.auto_merge is False
        assert config.trigger.label == "ship-it"

    def test_missing_binary(self) -> None:
        result = config_from_dict({"project": {"repo": "a/b"}, "formula": {"repo": "a/c"}})
        assert result == Err("missing project.binary")

    def test_repo_must_be_slug(self) -> None:
        data = {"project": {"binary": "dotty", "repo": "dotty"}, "formula": {"repo": "a/c"}}
        assert config_from_dict(data) == Err("project.repo must be owner/name")

    def test_unsupported_platform(self) -> None:
        result = config_from_dict({**MINIMAL, "build": {"platforms": ["windows-amd64"]}})
        assert result == Err("unsupported platform: windows-amd64")

    def test_duplicate_platform(self) -> None:
        result = config_from_dict({**MINIMAL, "build": {"platforms": ["linux-amd64"] * 2}})
        assert result == Err("duplicate platform: linux-amd64")

    def test_empty_platforms(self) -> None:
        result = config_from_dict({**MINIMAL, "build": {"platforms": []}})
        assert result == Err("build.platforms must not be empty")

    def test_platforms_not_strings(self) -> None:
        result = config_from_dict({**MINIMAL, "build": {"platforms": [1, 2]}})
        assert result == Err("build.platforms must be a list of platform ids")

    def test_max_parallel_must_be_positive(self) -> None:
        result = config_from_dict({**MINIMAL, "build": {"max_parallel": 0}})
        assert result == Err("build.max_parallel must be >= 1")


class TestLoadConfig:
    def test_loads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "dotrel.toml"
        path.write_text(
            '[project]\nbinary = "dotty"\nrepo = "someone/dotty"\n\n'
            '[formula]\nrepo = "someone/homebrew-tap"\n',
            encoding="utf-8",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        assert result.value.project.binary == "dotty"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "dotrel.toml")

        assert isinstance(result, Err)
        assert "not found" in result.error.message
        assert result.error.path == tmp_path / "dotrel.toml"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "dotrel.toml"
        path.write_text("[project\n", encoding="utf-8")

        result = load_config(path)

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "dotrel.toml"
        path.write_text('[project]\nbinary = "dotty"\n', encoding="utf-8")

        result = load_config(path)

        assert isinstance(result, Err)
        assert result.error.message == "Invalid config: project.repo must be owner/name"
