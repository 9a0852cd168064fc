from __future__ import annotations

from pathlib import Path

import pytest
from release_fakes import make_source_tree

from dotrel.output.console import MockConsole


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    return make_source_tree(tmp_path / "dotty")
