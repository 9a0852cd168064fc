from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

ReleaseErrorKind = Literal[
    "version_resolution",
    "duplicate_tag",
    "build_failed",
    "incomplete_artifact_set",
    "publish_failed",
    "formula_update_failed",
    "vcs_failed",
    "not_triggered",
    "invalid_input",
    "gh_missing",
    "gh_auth_required",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Error payload shared by every release stage.

    `stage` and `platform` are filled in as the error travels outward so the
    final report can say where the cycle stopped.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    stage: str | None = None
    platform: str | None = None

    def at_stage(self, stage: str) -> ReleaseError:
        if self.stage is not None:
            return self
        return replace(self, stage=stage)

    def pretty(self) -> str:
        prefix = f"[{self.stage}] " if self.stage else ""
        if self.platform:
            prefix += f"{self.platform}: "
        if self.hint:
            return f"{prefix}{self.message} (hint: {self.hint})"
        return f"{prefix}{self.message}"
