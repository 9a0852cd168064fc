"""Typed configuration loading for dotrel.toml.

Example:

    [project]
    binary = "dotty"
    repo = "someone/dotty"

    [build]
    platforms = ["darwin-arm64", "darwin-amd64", "linux-amd64"]
    max_parallel = 3

    [formula]
    repo = "someone/homebrew-tap"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotrel.platform.targets import DEFAULT_PLATFORM_IDS, TargetPlatform, get_platform

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_str, get_str_list, get_table

__all__ = [
    "BuildConfig",
    "Config",
    "ConfigError",
    "FormulaConfig",
    "ProjectConfig",
    "TriggerConfig",
    "CONFIG_FILE_NAME",
    "config_from_dict",
    "load_config",
]

CONFIG_FILE_NAME = "dotrel.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or is invalid."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """The tool being released."""

    binary: str
    repo: str  # owner/name
    manifest: str = "Cargo.toml"
    placeholder_version: str = "0.0.0"
    description: str = ""
    homepage: str | None = None
    license: str | None = None

    @property
    def homepage_url(self) -> str:
        return self.homepage or f"https://github.com/{self.repo}"


@dataclass(frozen=True, slots=True)
class BuildConfig:
    platforms: tuple[TargetPlatform, ...]
    max_parallel: int = 4
    out_dir: str = "out"
    work_dir: str = ".dotrel/work"


@dataclass(frozen=True, slots=True)
class TriggerConfig:
    label: str = "release"


@dataclass(frozen=True, slots=True)
class FormulaConfig:
    """Downstream package-manager formula repository."""

    repo: str  # owner/name
    path: str
    base_branch: str = "main"
    auto_merge: bool = True


@dataclass(frozen=True, slots=True)
class Config:
    project: ProjectConfig
    build: BuildConfig
    formula: FormulaConfig
    trigger: TriggerConfig = field(default_factory=TriggerConfig)


def _is_slug(value: str) -> bool:
    owner, sep, name = value.partition("/")
    return bool(sep and owner and name and "/" not in name)


def _parse_platforms(raw: list[str] | None) -> Result[tuple[TargetPlatform, ...], str]:
    ids = list(DEFAULT_PLATFORM_IDS) if raw is None else raw
    if not ids:
        return Err("build.platforms must not be empty")

    out: list[TargetPlatform] = []
    for pid in ids:
        platform = get_platform(pid)
        if platform is None:
            return Err(f"unsupported platform: {pid}")
        if platform in out:
            return Err(f"duplicate platform: {pid}")
        out.append(platform)
    return Ok(tuple(out))


def config_from_dict(data: Mapping[str, object]) -> Result[Config, str]:
    """Build a Config from parsed TOML, validating required keys."""
    project: StrDict = get_table(data, "project") or {}
    build: StrDict = get_table(data, "build") or {}
    formula: StrDict = get_table(data, "formula") or {}
    trigger: StrDict = get_table(data, "trigger") or {}

    binary = get_str(project, "binary")
    if binary is None:
        return Err("missing project.binary")
    repo = get_str(project, "repo")
    if repo is None or not _is_slug(repo):
        return Err("project.repo must be owner/name")

    formula_repo = get_str(formula, "repo")
    if formula_repo is None or not _is_slug(formula_repo):
        return Err("formula.repo must be owner/name")

    if "platforms" in build and get_str_list(build, "platforms") is None:
        return Err("build.platforms must be a list of platform ids")
    platforms = _parse_platforms(get_str_list(build, "platforms"))
    if isinstance(platforms, Err):
        return platforms

    max_parallel = get_int(build, "max_parallel")
    if max_parallel is not None and max_parallel < 1:
        return Err("build.max_parallel must be >= 1")

    return Ok(
        Config(
            project=ProjectConfig(
                binary=binary,
                repo=repo,
                manifest=get_str(project, "manifest") or "Cargo.toml",
                placeholder_version=get_str(project, "placeholder_version") or "0.0.0",
                description=get_str(project, "description") or "",
                homepage=get_str(project, "homepage"),
                license=get_str(project, "license"),
            ),
            build=BuildConfig(
                platforms=platforms.value,
                max_parallel=max_parallel or len(platforms.value),
                out_dir=get_str(build, "out_dir") or "out",
                work_dir=get_str(build, "work_dir") or ".dotrel/work",
            ),
            formula=FormulaConfig(
                repo=formula_repo,
                path=get_str(formula, "path") or f"Formula/{binary}.rb",
                base_branch=get_str(formula, "base_branch") or "main",
                auto_merge=get_bool(formula, "auto_merge") is not False,
            ),
            trigger=TriggerConfig(label=get_str(trigger, "label") or "release"),
        )
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate dotrel.toml.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed

    config = config_from_dict(parsed.value)
    if isinstance(config, Err):
        return Err(ConfigError(f"Invalid config: {config.error}", path=path))
    return Ok(config.value)
