from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from dotrel.core.config import CONFIG_FILE_NAME, Config, load_config
from dotrel.core.errors import ErrorCode
from dotrel.core.result import Err
from dotrel.git.repository import Repository
from dotrel.output.console import ConsoleProtocol, RichConsole

REPO_ROOT_ENV = "DOTREL_REPO_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    config: Config
    console: ConsoleProtocol


def detect_repo_root() -> Path:
    env = os.environ.get(REPO_ROOT_ENV, "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


def build_context(*, config_path: Path | None = None) -> CLIContext:
    repo_root = detect_repo_root()
    if not repo_root.is_dir() or not Repository(repo_root).exists():
        typer.echo(f"error: not a git repository: {repo_root}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    path = config_path if config_path is not None else repo_root / CONFIG_FILE_NAME
    config_result = load_config(path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        repo_root=repo_root,
        config=config_result.value,
        console=RichConsole(),
    )
