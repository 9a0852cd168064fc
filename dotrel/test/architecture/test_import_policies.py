"""Import and call policies for the dotrel package (tests excluded)."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ImportRef:
    module: str
    line: int


def _package_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _source_files() -> list[Path]:
    root = _package_root()
    files: list[Path] = []
    for path in sorted(root.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        files.append(path)
    return files


def _read_tree(path: Path) -> ast.AST:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def _imports(path: Path) -> list[ImportRef]:
    refs: list[ImportRef] = []
    for node in ast.walk(_read_tree(path)):
        if isinstance(node, ast.Import):
            refs.extend(ImportRef(module=a.name, line=node.lineno) for a in node.names)
        elif isinstance(node, ast.ImportFrom) and not node.level and node.module:
            refs.append(ImportRef(module=node.module, line=node.lineno))
    return refs


def _matches(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")


def _rel(path: Path) -> str:
    return path.relative_to(_package_root()).as_posix()


def test_rich_is_only_used_by_the_console() -> None:
    offenders = [
        f"{_rel(f)}:{ref.line}: {ref.module}"
        for f in _source_files()
        if _rel(f) != "output/console.py"
        for ref in _imports(f)
        if _matches(ref.module, "rich")
    ]
    assert not offenders, "Direct rich usage:\n" + "\n".join(offenders)


def test_typer_is_only_used_by_the_cli() -> None:
    offenders = [
        f"{_rel(f)}:{ref.line}: {ref.module}"
        for f in _source_files()
        if not _rel(f).startswith("cli/")
        for ref in _imports(f)
        if _matches(ref.module, "typer")
    ]
    assert not offenders, "typer imported outside cli/:\n" + "\n".join(offenders)


def test_services_do_not_import_the_cli() -> None:
    offenders = [
        f"{_rel(f)}:{ref.line}: {ref.module}"
        for f in _source_files()
        if _rel(f).startswith(("services/", "core/", "platform/", "git/", "output/"))
        for ref in _imports(f)
        if _matches(ref.module, "dotrel.cli")
    ]
    assert not offenders, "Layering violations:\n" + "\n".join(offenders)


def test_subprocess_calls_go_through_platform_process() -> None:
    offenders: list[str] = []
    for f in _source_files():
        if _rel(f) == "platform/process.py":
            continue
        for node in ast.walk(_read_tree(f)):
            if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
                continue
            func = node.func
            if (
                isinstance(func.value, ast.Name)
                and func.value.id == "subprocess"
                and func.attr in {"run", "check_output", "Popen", "call"}
            ):
                offenders.append(f"{_rel(f)}:{node.lineno}: subprocess.{func.attr}")
    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)
